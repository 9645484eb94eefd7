TRANSLATIONS = {
    "en": {
        "rtt-title": "RTT – RoadToTrading",
        "nav-tool": "Tool",
        "upload-instructions": "Select chart image to analyze, or paste it from the clipboard.",
        "app-focus-description": "This tool is optimized for short-term and daily trading analysis.",
        "image-description-placeholder": "Add any additional context for the image (optional)...",
        "select-file-btn": "Select File",
        "analyze-btn": "Analyze",
        "loader-text": "Analyzing chart...",
        "result-title": "> Analysis Result_",
        "share-btn": "Share",
        "copied-msg": "Copied!",
        "error-title": "> Error",
        "footer-text": "© 2024 RoadToTrading. All rights reserved.",
        "lang-switch": "BG",
        "info-sources": "Information Sources",
        "pattern": "Pattern Identified",
        "signal": "Signal",
        "profit-prob": "Profit Probability",
        "confirm-indicators": "Suggested Confirmation Indicators",
        "take-profit": "Take Profit",
        "stop-loss": "Stop Loss",
        "tp-timeframe": "Take Profit Timeframe",
        "trading-advice": "Trading Advice",
        "summary": "Summary",
        "error-unexpected": "An unexpected error occurred. Please check the console for details.",
        "error-api-key": "Your API key is not valid. Please check your configuration.",
        "error-400": "The request was malformed. The provided image might be invalid, or the model could not return valid JSON.",
        "error-json": "Could not find a valid JSON object in the model's response. The response was: ",
        "error-json-parse": "The model's response contained malformed JSON. The response was: ",
        "error-prompt": "The analysis instructions could not be loaded. Please check the knowledge files.",
        "error-image": "The selected file could not be read as an image.",
    },
    "bg": {
        "rtt-title": "RTT – RoadToTrading",
        "nav-tool": "Инструмент",
        "upload-instructions": "Изберете изображение на графика за анализ или го поставете от клипборда.",
        "app-focus-description": "Този инструмент е оптимизиран за краткосрочен и дневен анализ.",
        "image-description-placeholder": "Добавете допълнителен контекст за изображението (по избор)...",
        "select-file-btn": "Избор на файл",
        "analyze-btn": "Анализирай",
        "loader-text": "Анализиране на графиката...",
        "result-title": "> Резултат от анализа_",
        "share-btn": "Сподели",
        "copied-msg": "Копирано!",
        "error-title": "> Грешка",
        "footer-text": "© 2024 RoadToTrading. Всички права запазени.",
        "lang-switch": "EN",
        "info-sources": "Източници на информация",
        "pattern": "Идентифициран Патерн",
        "signal": "Сигнал",
        "profit-prob": "Вероятност за печалба",
        "confirm-indicators": "Предложени индикатори за потвърждение",
        "take-profit": "Вземане на печалба",
        "stop-loss": "Стоп на загуба",
        "tp-timeframe": "Времева рамка за печалба",
        "trading-advice": "Търговски съвет",
        "summary": "Обобщение",
        "error-unexpected": "Възникна неочаквана грешка. Моля, проверете конзолата за подробности.",
        "error-api-key": "Вашият API ключ не е валиден. Моля, проверете конфигурацията си.",
        "error-400": "Заявката беше неправилно оформена. Предоставеното изображение може да е невалидно или моделът не можа да върне валиден JSON.",
        "error-json": "В отговора на модела не можа да бъде намерен валиден JSON обект. Отговорът беше: ",
        "error-json-parse": "Отговорът на модела съдържа невалиден JSON. Отговорът беше: ",
        "error-prompt": "Инструкциите за анализ не можаха да бъдат заредени. Моля, проверете файловете със знания.",
        "error-image": "Избраният файл не може да бъде прочетен като изображение.",
    },
}


def t(lang: str, key: str) -> str:
    """Lookup with English fallback, then the key itself."""
    table = TRANSLATIONS.get(lang) or TRANSLATIONS["en"]
    return table.get(key) or TRANSLATIONS["en"].get(key, key)
