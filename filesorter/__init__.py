"""
File Sorter Utility

Утилита для копирования файлов в структуру каталогов по датам (<год>/<месяц>/<день>).
"""

__version__ = "1.0.0"
__author__ = "File Sorter Team"
__description__ = "Utility for copying files into a date-based directory structure"
