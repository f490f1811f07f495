# config.py
import os

DB_URL = os.getenv("DB_URL", "sqlite:///installments.db")
TIMEZONE = os.getenv("TIMEZONE", "Asia/Tehran")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Fixed installment amounts are rounded to this many Rials
ROUNDING_INCREMENT = int(os.getenv("ROUNDING_INCREMENT", "100000"))

# Years above this are treated as Gregorian when normalizing input dates
GREGORIAN_YEAR_THRESHOLD = int(os.getenv("GREGORIAN_YEAR_THRESHOLD", "1700"))
