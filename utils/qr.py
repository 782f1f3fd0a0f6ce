import base64
import io
import json

import qrcode


def render_qr_data_url(payload: dict) -> str:
    """Encode a JSON payload as a PNG QR code data URL."""
    img = qrcode.make(json.dumps(payload, sort_keys=True))
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    data = base64.b64encode(buf.getvalue()).decode("ascii")
    return f"data:image/png;base64,{data}"
