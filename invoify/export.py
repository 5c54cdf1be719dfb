"""Bulk export of rendered invoices as a single zip archive."""

import asyncio
import io
import re
import zipfile
from typing import List, Optional, Protocol, Sequence, Tuple

from ._utils import logger


class InvoiceRenderer(Protocol):
    """Turns one stored invoice record into PDF bytes."""

    async def render(self, invoice: dict) -> bytes:
        ...


def safe_pdf_filename(invoice: dict) -> str:
    number = (invoice.get("details") or {}).get("invoiceNumber")
    if not number:
        number = f"invoice-{str(invoice.get('_id', ''))[-8:]}"
    return re.sub(r"[^a-z0-9]", "_", str(number), flags=re.IGNORECASE).lower() + ".pdf"


async def _render_one(renderer: InvoiceRenderer, invoice: dict) -> Optional[Tuple[str, bytes]]:
    try:
        return safe_pdf_filename(invoice), await renderer.render(invoice)
    except Exception as e:
        logger.error(f"Error rendering invoice {invoice.get('_id')}: {e}")
        return None


async def render_invoices(
    invoices: Sequence[dict],
    renderer: InvoiceRenderer,
    batch_size: int = 10,
) -> List[Tuple[str, bytes]]:
    """Render invoices concurrently, ``batch_size`` at a time.

    Invoices that fail to render are logged and left out.
    """
    rendered = []
    for start in range(0, len(invoices), batch_size):
        batch = invoices[start:start + batch_size]
        results = await asyncio.gather(*[_render_one(renderer, inv) for inv in batch])
        rendered.extend(r for r in results if r is not None)
    return rendered


def pack_zip(files: Sequence[Tuple[str, bytes]], compresslevel: int = 5) -> bytes:
    """Pack named blobs into a zip archive; repeated names get a numeric suffix."""
    buffer = io.BytesIO()
    used = set()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED, compresslevel=compresslevel) as zf:
        for name, blob in files:
            stem, suffix = name.rsplit(".", 1) if "." in name else (name, "")
            candidate, n = name, 1
            while candidate in used:
                n += 1
                candidate = f"{stem}_{n}.{suffix}" if suffix else f"{stem}_{n}"
            used.add(candidate)
            zf.writestr(candidate, blob)
    return buffer.getvalue()


async def build_invoice_zip(
    invoices: Sequence[dict],
    renderer: InvoiceRenderer,
    batch_size: int = 10,
) -> Tuple[bytes, int]:
    """Render and pack invoices.

    Returns:
        (zip bytes, number of PDFs included)
    """
    logger.info(f"Starting PDF generation for {len(invoices)} invoices")
    rendered = await render_invoices(invoices, renderer, batch_size)
    return pack_zip(rendered), len(rendered)
