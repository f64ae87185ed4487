"""Thermal receipt printing over USB ESC/POS."""

from __future__ import annotations

import logging
import os
from decimal import Decimal
from pathlib import Path

from till.config import (
    DELIVERY_ORDER_TYPE,
    PRINTER_FONT_PATH,
    PRINTER_FONT_SIZE,
    PRINTER_LEFT_INDENT_PX,
    PRINTER_TAIL_SPACER_PX,
    PRINTER_USB_PRODUCT_ID,
    PRINTER_USB_VENDOR_ID,
    PRINTER_WIDTH_PX_BY_MM,
    SHOP_TITLE,
)
from till.errors import InvalidEntry, PrintRefused
from till.models import CopyKind, Order

logger = logging.getLogger(__name__)

# Extra vertical headroom so descenders are not clipped on thermal output.
_LINE_EXTRA_PX = 12
_RULE_HEIGHT_PX = 12
_RULE_THICKNESS_PX = 2
_RULE = "-" * 24
_FONT_OVERRIDE_ENV = "TILL_PRINTER_FONT_PATH"
_LINUX_FONT_FALLBACKS = (
    "/usr/share/fonts/TTF/DejaVuSans.ttf",
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    "/usr/share/fonts/dejavu/DejaVuSans.ttf",
    "/usr/share/fonts/noto/NotoSans-Regular.ttf",
    "/usr/share/fonts/liberation/LiberationSans-Regular.ttf",
)


def _money(value: Decimal) -> str:
    return f"{value:.2f}"


def ensure_printable(order: Order, copy: CopyKind = CopyKind.CUSTOMER) -> None:
    if order.is_voided:
        raise PrintRefused(order.order_no, "it was voided")
    if copy is CopyKind.KITCHEN and order.is_done:
        raise PrintRefused(order.order_no, "a done order needs no kitchen copy")


def ticket_lines(order: Order, copy: CopyKind = CopyKind.CUSTOMER) -> list[str]:
    """Text layout of one ticket, top to bottom."""
    ensure_printable(order, copy)
    lines = [
        SHOP_TITLE,
        f"{copy.value} copy",
        f"Order #{order.order_no}",
        order.date.astimezone().strftime("%Y-%m-%d %H:%M"),
        f"Worker: {order.worker}",
        f"{order.payment} / {order.order_type}",
    ]
    if order.note:
        lines.append(f"Note: {order.note}")
    lines.append(_RULE)
    for line in order.cart:
        lines.append(f"{line.name}  {_money(line.price)}")
        for extra in line.extras:
            lines.append(f"  + {extra.name}  {_money(extra.price)}")
    lines.append(_RULE)
    if order.order_type == DELIVERY_ORDER_TYPE and order.delivery_fee > 0:
        lines.append(f"Items  {_money(order.items_total)}")
        lines.append(f"Delivery  {_money(order.delivery_fee)}")
    lines.append(f"TOTAL  {_money(order.total)}")
    lines.append("DONE" if order.is_done else "Thank you!")
    return lines


def width_px_for(width_mm: int) -> int:
    try:
        return PRINTER_WIDTH_PX_BY_MM[int(width_mm)]
    except (KeyError, ValueError) as exc:
        raise InvalidEntry(f"Unsupported paper width {width_mm} mm.") from exc


def resolve_printer_font_path() -> str:
    """
    Resolve a printer font path.

    Resolution order:
    1. TILL_PRINTER_FONT_PATH (if set)
    2. PRINTER_FONT_PATH
    3. Known Linux fallbacks
    """
    env_override = os.environ.get(_FONT_OVERRIDE_ENV, "").strip()
    candidates: list[str] = []
    if env_override:
        candidates.append(env_override)
    candidates.append(PRINTER_FONT_PATH)
    candidates.extend(_LINUX_FONT_FALLBACKS)

    seen: set[str] = set()
    for candidate in candidates:
        if not candidate or candidate in seen:
            continue
        seen.add(candidate)
        if Path(candidate).is_file():
            return candidate

    raise RuntimeError(
        f"No usable printer font found. Set {_FONT_OVERRIDE_ENV} to a valid .ttf/.otf file. "
        f"Tried: {', '.join(seen)}"
    )


def check_printer_dependencies() -> tuple[bool, str]:
    """Check whether printer dependencies are importable."""
    try:
        from escpos.printer import Usb  # noqa: F401
        from PIL import ImageFont

        font_path = resolve_printer_font_path()
        ImageFont.truetype(font_path, PRINTER_FONT_SIZE)
    except Exception as exc:
        return (False, f"Printer deps unavailable: {exc}")
    return (True, "Printer ready")


def _render_line(text: str, font: object, width_px: int) -> object:
    from PIL import Image, ImageDraw

    canvas_height = PRINTER_FONT_SIZE + _LINE_EXTRA_PX
    img = Image.new("1", (width_px, canvas_height), color=1)
    draw = ImageDraw.Draw(img)

    bbox = draw.textbbox((0, 0), text, font=font)
    text_height = bbox[3] - bbox[1]

    # Offset by bbox top so descenders are not clipped.
    y = (canvas_height - text_height) // 2 - bbox[1]
    draw.text((PRINTER_LEFT_INDENT_PX, y), text, font=font, fill=0)
    return img


def _render_rule(width_px: int) -> object:
    from PIL import Image, ImageDraw

    img = Image.new("1", (width_px, _RULE_HEIGHT_PX), color=1)
    draw = ImageDraw.Draw(img)
    top = (_RULE_HEIGHT_PX - _RULE_THICKNESS_PX) // 2
    draw.rectangle((PRINTER_LEFT_INDENT_PX, top, width_px - PRINTER_LEFT_INDENT_PX, top + _RULE_THICKNESS_PX - 1), fill=0)
    return img


def _render_spacer(width_px: int, height_px: int) -> object:
    from PIL import Image

    return Image.new("1", (width_px, max(1, height_px)), color=1)


def print_order_ticket(order: Order, width_mm: int = 58, copy: CopyKind = CopyKind.CUSTOMER) -> None:
    """Print one ticket and cut the paper."""
    lines = ticket_lines(order, copy)
    width_px = width_px_for(width_mm)

    try:
        from escpos.printer import Usb
        from PIL import ImageFont
    except Exception as exc:
        raise RuntimeError(f"Printer dependencies unavailable: {exc}") from exc

    printer = Usb(PRINTER_USB_VENDOR_ID, PRINTER_USB_PRODUCT_ID)
    font = ImageFont.truetype(resolve_printer_font_path(), PRINTER_FONT_SIZE)
    for text in lines:
        printer.image(_render_rule(width_px) if text == _RULE else _render_line(text, font, width_px))
    printer.image(_render_spacer(width_px, PRINTER_TAIL_SPACER_PX))
    printer.cut()
    logger.info("ticket printed order_no=%d copy=%s width_mm=%d", order.order_no, copy.value, width_mm)
