"""Runtime configuration defaults for persistence, sync, printing and reports."""

from __future__ import annotations

import os

DB_PATH = os.environ.get("TILL_DB_PATH", "data/till.db")
LOG_PATH = os.environ.get("TILL_LOG_PATH", "/tmp/till-debug.log")
REPORT_DIR = os.environ.get("TILL_REPORT_DIR", "data/reports")

# Remote mirror. An empty DATABASE_URL keeps the till fully local.
SHOP_ID = os.environ.get("TILL_SHOP_ID", "main")
DATABASE_URL = os.getenv("DATABASE_URL", "")
DATABASE_NAME = os.getenv("DATABASE_NAME", "till")
REMOTE_TIMEOUT_MS = 3000

PUSH_DEBOUNCE_SECONDS = 1.6
SYNC_POLL_SECONDS = 0.25
LOCAL_SAVE_INTERVAL_SECONDS = 5.0

EDITOR_PIN = os.environ.get("TILL_EDITOR_PIN", "0512")
DEFAULT_ADMIN_PINS: dict[int, str] = {1: "1111", 2: "2222", 3: "3333", 4: "4444", 5: "5555", 6: "6666"}

DELIVERY_ORDER_TYPE = "Delivery"
SHOP_TITLE = "Burger Truck"

PRINTER_USB_VENDOR_ID = 0x28E9
PRINTER_USB_PRODUCT_ID = 0x0289
PRINTER_WIDTH_PX_BY_MM: dict[int, int] = {58: 384, 80: 576}
PRINTER_FONT_SIZE = 24
PRINTER_FONT_PATH = "/System/Library/Fonts/SFNS.ttf"
PRINTER_LEFT_INDENT_PX = 8
PRINTER_TAIL_SPACER_PX = 70
AUTO_PRINT_CUSTOMER_COPY = os.environ.get("TILL_AUTO_PRINT", "1") == "1"
