from __future__ import annotations

from typing import Iterable, Sequence

# A4: 595 x 842 points
PAGE_W = 595
PAGE_H = 842
LEFT_X = 50
AMOUNT_X = 420


def _latin1(text: object) -> str:
    return str(text).encode("latin-1", errors="replace").decode("latin-1")


def _escape(text: str) -> str:
    # PDF literal string escaping for (), \.
    return text.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")


def _text_at(x: int, y: int, text: str, size: int) -> list[str]:
    return ["BT", f"/F1 {size} Tf", f"1 0 0 1 {x} {y} Tm", f"({_escape(_latin1(text))}) Tj", "ET"]


def build_invoice_pdf_bytes(
    *,
    title: str,
    header_lines: Iterable[str],
    item_rows: Sequence[tuple[str, str]],
    total_rows: Sequence[tuple[str, str]],
    footer_lines: Iterable[str] | None = None,
) -> bytes:
    """Build a deterministic single-page invoice PDF.

    `item_rows` and `total_rows` are (label, amount) pairs; amounts are drawn
    in a second column. No timestamps or random ids are embedded, so the
    same invoice always renders to the same bytes. Base14 Helvetica only.
    """

    ops: list[str] = []
    y = PAGE_H - 50
    ops += _text_at(LEFT_X, y, title, 16)
    y -= 26

    for line in header_lines:
        ops += _text_at(LEFT_X, y, line, 10)
        y -= 14

    y -= 10
    ops += _text_at(LEFT_X, y, "Item", 10)
    ops += _text_at(AMOUNT_X, y, "Amount", 10)
    y -= 6
    ops.append(f"{LEFT_X} {y} m {PAGE_W - 50} {y} l S")
    y -= 14

    for label, amount in item_rows:
        ops += _text_at(LEFT_X, y, label, 9)
        ops += _text_at(AMOUNT_X, y, amount, 9)
        y -= 13

    y -= 8
    ops.append(f"{AMOUNT_X - 10} {y} m {PAGE_W - 50} {y} l S")
    y -= 14

    for idx, (label, amount) in enumerate(total_rows):
        # Last row is the grand total.
        size = 11 if idx == len(total_rows) - 1 else 10
        ops += _text_at(AMOUNT_X - 170, y, label, size)
        ops += _text_at(AMOUNT_X, y, amount, size)
        y -= 15

    if footer_lines is not None:
        fy = 40
        for line in footer_lines:
            ops += _text_at(LEFT_X, fy, line, 8)
            fy += 10

    stream = ("\n".join(ops) + "\n").encode("latin-1")

    parts: list[bytes] = [b"%PDF-1.4\n"]
    offsets: list[int] = [0]

    def _emit(obj_num: int, body: bytes) -> None:
        offsets.append(sum(len(p) for p in parts))
        parts.append(f"{obj_num} 0 obj\n".encode("ascii"))
        parts.append(body)
        if not body.endswith(b"\n"):
            parts.append(b"\n")
        parts.append(b"endobj\n")

    _emit(1, b"<< /Type /Catalog /Pages 2 0 R >>\n")
    _emit(2, b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>\n")
    _emit(
        3,
        (
            f"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 {PAGE_W} {PAGE_H}] "
            "/Resources << /Font << /F1 4 0 R >> >> /Contents 5 0 R >>\n"
        ).encode("ascii"),
    )
    _emit(4, b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>\n")
    _emit(5, f"<< /Length {len(stream)} >>\nstream\n".encode("ascii") + stream + b"endstream\n")

    xref_start = sum(len(p) for p in parts)
    parts.append(b"xref\n")
    parts.append(f"0 {len(offsets)}\n".encode("ascii"))
    parts.append(b"0000000000 65535 f \n")
    for off in offsets[1:]:
        parts.append(f"{off:010d} 00000 n \n".encode("ascii"))
    parts.append(b"trailer\n")
    parts.append(f"<< /Size {len(offsets)} /Root 1 0 R >>\n".encode("ascii"))
    parts.append(b"startxref\n")
    parts.append(f"{xref_start}\n".encode("ascii"))
    parts.append(b"%%EOF\n")

    return b"".join(parts)
