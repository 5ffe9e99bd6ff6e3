from typing import Literal, Optional

from rich.console import Console
from rich.table import Table

from rtb_crypto.cipher import IV_SIZE, OVERHEAD_SIZE, SECTION_SIZE, SIGNATURE_SIZE
from rtb_crypto.iv import parse_iv


COLORS = {
    "iv": "cyan",
    "payload": {
        "even": "bright_red",
        "odd": "dark_red",
    },
    "signature": {
        "unverified": "yellow",
        "verified": "spring_green2",
        "invalid": "bold red",
    },
}

SignatureState = Literal["unverified", "verified", "invalid"]


def hex_string(data: bytes, color: str) -> str:
    """Convert bytes to a spaced hex string and apply coloring."""
    return " ".join(f"[{color}]{b:02x}[/{color}]" for b in data)


def payload_string(payload: bytes) -> str:
    """Hex string of the payload, alternating colors per 20-byte section."""
    sections = []
    for index, offset in enumerate(range(0, len(payload), SECTION_SIZE)):
        color = COLORS["payload"]["odd" if index % 2 else "even"]
        sections.append(hex_string(payload[offset:offset + SECTION_SIZE], color))
    return "\n".join(sections)


def render_envelope(ciphertext: bytes, verified: Optional[bool] = None) -> Table:
    """Render the fields of a ciphertext envelope."""
    if len(ciphertext) < OVERHEAD_SIZE:
        raise ValueError(f"Ciphertext must be at least {OVERHEAD_SIZE} bytes long")

    iv = ciphertext[:IV_SIZE]
    payload = ciphertext[IV_SIZE:-SIGNATURE_SIZE]
    signature = ciphertext[-SIGNATURE_SIZE:]
    iv_info = parse_iv(iv)

    signature_state: SignatureState = "unverified"
    if verified is not None:
        signature_state = "verified" if verified else "invalid"

    ui_table = Table(title=f"Ciphertext  |  {len(ciphertext)} bytes  |  payload {len(payload)} bytes")
    ui_table.add_column("Field", justify="right")
    ui_table.add_column("Value")

    ui_table.add_row("IV", hex_string(iv, COLORS["iv"]))
    ui_table.add_row("Timestamp", iv_info.timestamp.isoformat())
    ui_table.add_row("Server ID", f"0x{iv_info.server_id:016x}")
    ui_table.add_row("Payload", payload_string(payload) if payload else "[dim](empty)[/dim]")
    ui_table.add_row("Signature", hex_string(signature, COLORS["signature"][signature_state]))
    ui_table.add_row("Status", signature_state)
    return ui_table


def print_envelope(ciphertext: bytes, verified: Optional[bool] = None, console: Optional[Console] = None) -> None:
    (console or Console()).print(render_envelope(ciphertext, verified))
