"""Payload formatters: build the strings that get encoded for each content type.

These are plain string templates; the only checks are presence checks and
the barcode format rules.
"""

import re
import urllib.parse

from quantumqr.errors import InvalidOptionsError

# Characters JavaScript's encodeURIComponent leaves alone besides alphanumerics
_URI_COMPONENT_SAFE = "-_.!~*'()"

WIFI_SECURITY = ("WPA", "WEP", "nopass")

BARCODE_RULES = {
    "EAN-13": re.compile(r"^\d{13}$"),
    "UPC-A": re.compile(r"^\d{12}$"),
    "Code-128": re.compile(r"^.{1,80}$", re.DOTALL),
    "Code-39": re.compile(r"^[A-Z0-9\-. $/+%]*$"),
}


def encode_uri_component(value: str) -> str:
    return urllib.parse.quote(value, safe=_URI_COMPONENT_SAFE)


def _require(value, name: str, kind: str):
    if value is None or (isinstance(value, str) and not value.strip()):
        raise InvalidOptionsError(f"{kind}: {name} is required", stage="payload")


def _format_amount(amount: float | int) -> str:
    if isinstance(amount, float) and amount.is_integer():
        return str(int(amount))
    return str(amount)


def vcard(
    first_name: str,
    last_name: str,
    phone: str = "",
    email: str = "",
    organization: str | None = None,
    url: str | None = None,
) -> str:
    """vCard 3.0 contact card; empty optional fields are omitted."""
    lines = [
        "BEGIN:VCARD",
        "VERSION:3.0",
        f"FN:{first_name} {last_name}",
        f"N:{last_name};{first_name};;;",
        phone and f"TEL:{phone}",
        email and f"EMAIL:{email}",
        organization and f"ORG:{organization}",
        url and f"URL:{url}",
        "END:VCARD",
    ]
    return "\n".join(line for line in lines if line)


def wifi(ssid: str, password: str = "", security: str = "WPA", hidden: bool = False) -> str:
    _require(ssid, "ssid", "wifi")
    if security not in WIFI_SECURITY:
        raise InvalidOptionsError(f"wifi: security must be one of {WIFI_SECURITY}, got {security!r}", stage="payload")
    return f"WIFI:T:{security};S:{ssid};P:{password};H:{'true' if hidden else 'false'};;"


def upi(
    payee_id: str,
    payee_name: str,
    amount: float | int | None = None,
    currency: str | None = None,
    note: str | None = None,
) -> str:
    """UPI payment link. Amount, currency and note are dropped when absent."""
    _require(payee_id, "payee_id", "upi")
    _require(payee_name, "payee_name", "upi")
    link = f"upi://pay?pa={payee_id}&pn={encode_uri_component(payee_name)}"
    if amount:
        link += f"&am={_format_amount(amount)}"
    if currency:
        link += f"&cu={currency}"
    if note:
        link += f"&tn={encode_uri_component(note)}"
    return link


def sms(phone: str, message: str = "") -> str:
    _require(phone, "phone", "sms")
    return f"sms:{phone}?body={encode_uri_component(message)}"


def email(to: str, subject: str | None = None, body: str | None = None) -> str:
    _require(to, "to", "email")
    params = []
    if subject:
        params.append(f"subject={encode_uri_component(subject)}")
    if body:
        params.append(f"body={encode_uri_component(body)}")
    link = f"mailto:{to}"
    if params:
        link += "?" + "&".join(params)
    return link


def validate_barcode(data: str, barcode_type: str) -> bool:
    rule = BARCODE_RULES.get(barcode_type)
    return True if rule is None else bool(rule.match(data))


def barcode(data: str, barcode_type: str = "EAN-13") -> str:
    """Tag linear-barcode data for encoding in a QR symbol.

    This only checks the data's format; nothing is decoded or re-encoded.
    """
    _require(data, "data", "barcode")
    if barcode_type not in BARCODE_RULES:
        raise InvalidOptionsError(
            f"barcode: type must be one of {list(BARCODE_RULES)}, got {barcode_type!r}", stage="payload",
        )
    if not validate_barcode(data, barcode_type):
        raise InvalidOptionsError(f"barcode: {data!r} is not valid {barcode_type} data", stage="payload")
    return f"BARCODE:{barcode_type}:{data}"
