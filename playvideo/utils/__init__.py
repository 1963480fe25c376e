"""RU: Вспомогательные утилиты (логирование, поиск инструментов).

EN: Small helpers (logging, tool lookup).
"""
