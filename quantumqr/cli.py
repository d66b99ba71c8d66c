"""Quantum QR CLI: render payloads to styled QR images from the command line."""

import argparse
import sys
from pathlib import Path

from quantumqr.errors import QuantumQRError
from quantumqr.logging import audit, get_logger, setup_logging

log = get_logger("cli")

SHAPE_CHOICES = ["square", "circle", "rounded-square", "heart", "star", "diamond",
                 "triangle", "pentagon", "hexagon", "octagon"]


def _encoding_options(args):
    from quantumqr.options import EncodingOptions

    return EncodingOptions(
        error_correction=args.ecc,
        margin=args.margin,
        color_dark=args.dark,
        color_light=args.light,
        width=args.width,
    )


def _output_path(args) -> Path:
    from quantumqr.export import download_filename, normalize_format

    if args.output:
        # the suffix follows what is actually written (svg requests write png)
        output = Path(args.output).with_suffix("." + normalize_format(args.format))
    else:
        output = Path(download_filename(args.format))
    output.parent.mkdir(parents=True, exist_ok=True)
    return output


def _write(result, args) -> None:
    from quantumqr.export import to_bytes

    output = _output_path(args)
    output.write_bytes(to_bytes(result.image, args.format))

    w, h = result.image.size
    print(f"Generated: {output} ({w}x{h}, {' > '.join(result.stages)})")
    for warning in result.warnings:
        print(f"  Warning: {warning}")
    if result.scan_ok is not None:
        print(f"  Scan: {'PASS' if result.scan_ok else 'FAIL'}")
        for sr in result.scan_results:
            tag = "PASS" if sr.success else "FAIL"
            print(f"    [{sr.decoder:12s}] {tag} | {sr.decode_time_ms:.1f}ms | {sr.decoded_data or sr.error}")


def _render(args, payload: str, payload_type: str) -> None:
    from quantumqr.options import LogoSpec, RenderOptions
    from quantumqr.pipeline import generate

    options = RenderOptions(
        encoding=_encoding_options(args),
        shape=args.shape,
        logo=LogoSpec(source=Path(args.logo)) if args.logo else None,
        verify_scan=args.verify,
    )
    _write(generate(payload, payload_type, options), args)


def cmd_generate(args):
    """Encode free text or a URL."""
    _render(args, args.payload, args.type)


def cmd_picture(args):
    """Blend a photo with the QR pattern."""
    from quantumqr.options import BlendSpec, RenderOptions
    from quantumqr.pipeline import generate

    options = RenderOptions(
        encoding=_encoding_options(args),
        blend=BlendSpec(source=Path(args.photo), opacity=args.opacity, mode=args.blend_mode),
        verify_scan=args.verify,
    )
    _write(generate(args.payload, "picture", options), args)


def cmd_wifi(args):
    from quantumqr.payloads import wifi

    _render(args, wifi(args.ssid, args.password, args.security, args.hidden), "wifi")


def cmd_upi(args):
    from quantumqr.payloads import upi

    _render(args, upi(args.payee_id, args.payee_name, args.amount, args.currency, args.note), "upi")


def cmd_vcard(args):
    from quantumqr.payloads import vcard

    payload = vcard(args.first_name, args.last_name, args.phone, args.email, args.organization, args.url)
    _render(args, payload, "vcard")


def cmd_sms(args):
    from quantumqr.payloads import sms

    _render(args, sms(args.phone, args.message), "sms")


def cmd_email(args):
    from quantumqr.payloads import email

    _render(args, email(args.to, args.subject, args.body), "email")


def cmd_barcode(args):
    from quantumqr.payloads import barcode

    _render(args, barcode(args.data, args.barcode_type), "barcode")


def cmd_verify(args):
    """Verify a QR code image."""
    from quantumqr.logo import load_image
    from quantumqr.verify import verify

    img = load_image(Path(args.image), what="QR image")
    results = verify(img, expected_data=args.expected)

    all_pass = True
    for r in results:
        status = "PASS" if r.success else "FAIL"
        if not r.success:
            all_pass = False
        print(f"  [{r.decoder:12s}] {status} | {r.decode_time_ms:6.1f}ms | {r.decoded_data or r.error}")

    return 0 if all_pass else 1


def _add_render_args(p: argparse.ArgumentParser, *, styling: bool = True) -> None:
    p.add_argument("-o", "--output", default=None, help="Output file (default qrcode-<ms>.<format>)")
    p.add_argument("-f", "--format", default="png", choices=["png", "jpg", "svg"], help="Output format (svg writes png)")
    p.add_argument("-e", "--ecc", default="M", choices=["L", "M", "Q", "H"], help="Error correction level")
    p.add_argument("--margin", type=int, default=4, help="Quiet zone in modules")
    p.add_argument("--width", type=int, default=512, help="Output width/height in pixels")
    p.add_argument("--dark", default="#000000", help="Dark module colour")
    p.add_argument("--light", default="#FFFFFF", help="Light module colour")
    p.add_argument("--verify", action="store_true", help="Decode the result and report PASS/FAIL")
    if styling:
        p.add_argument("--shape", default="square", choices=SHAPE_CHOICES, help="Silhouette to clip to")
        p.add_argument("--logo", default=None, help="Logo image to centre on the code")


def build_parser() -> argparse.ArgumentParser:
    from quantumqr.pipeline import PAYLOAD_TYPES

    parser = argparse.ArgumentParser(prog="quantumqr", description="Quantum QR: styled QR code generator")

    # Global logging flags
    parser.add_argument("-V", "--verbose", action="store_true", help="Enable DEBUG-level logging")
    parser.add_argument("--log-file", default=None, help="Write JSON logs to file")
    parser.add_argument("--json-logs", action="store_true", help="JSON log lines on the console")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # --- generate ---
    p_gen = subparsers.add_parser("generate", help="Encode text or a URL")
    p_gen.add_argument("payload", help="Text or URL to encode")
    p_gen.add_argument("-t", "--type", default="text", choices=PAYLOAD_TYPES, help="Payload type tag")
    _add_render_args(p_gen)

    # --- picture ---
    p_pic = subparsers.add_parser("picture", help="Blend a photo into the code")
    p_pic.add_argument("payload", help="Text or URL to encode")
    p_pic.add_argument("--photo", required=True, help="Photo to blend")
    p_pic.add_argument("--opacity", type=float, default=0.7, help="Darkening strength 0-1")
    p_pic.add_argument("--blend-mode", default="multiply", choices=["multiply", "advanced"])
    _add_render_args(p_pic, styling=False)

    # --- wifi ---
    p_wifi = subparsers.add_parser("wifi", help="WiFi credentials")
    p_wifi.add_argument("ssid")
    p_wifi.add_argument("--password", default="")
    p_wifi.add_argument("--security", default="WPA", choices=["WPA", "WEP", "nopass"])
    p_wifi.add_argument("--hidden", action="store_true")
    _add_render_args(p_wifi)

    # --- upi ---
    p_upi = subparsers.add_parser("upi", help="UPI payment link")
    p_upi.add_argument("payee_id")
    p_upi.add_argument("payee_name")
    p_upi.add_argument("--amount", type=float, default=None)
    p_upi.add_argument("--currency", default=None)
    p_upi.add_argument("--note", default=None)
    _add_render_args(p_upi)

    # --- vcard ---
    p_vcard = subparsers.add_parser("vcard", help="Contact card")
    p_vcard.add_argument("first_name")
    p_vcard.add_argument("last_name")
    p_vcard.add_argument("--phone", default="")
    p_vcard.add_argument("--email", default="")
    p_vcard.add_argument("--organization", default=None)
    p_vcard.add_argument("--url", default=None)
    _add_render_args(p_vcard)

    # --- sms ---
    p_sms = subparsers.add_parser("sms", help="SMS intent")
    p_sms.add_argument("phone")
    p_sms.add_argument("--message", default="")
    _add_render_args(p_sms)

    # --- email ---
    p_email = subparsers.add_parser("email", help="mailto link")
    p_email.add_argument("to")
    p_email.add_argument("--subject", default=None)
    p_email.add_argument("--body", default=None)
    _add_render_args(p_email)

    # --- barcode ---
    p_bar = subparsers.add_parser("barcode", help="Tag linear barcode data")
    p_bar.add_argument("data")
    p_bar.add_argument("--barcode-type", default="EAN-13", choices=["EAN-13", "UPC-A", "Code-128", "Code-39"])
    _add_render_args(p_bar)

    # --- verify ---
    p_ver = subparsers.add_parser("verify", help="Verify a QR code image")
    p_ver.add_argument("image", help="Path to QR code image")
    p_ver.add_argument("--expected", default=None, help="Expected decoded data (fails if mismatch)")

    return parser


COMMANDS = {
    "generate": cmd_generate,
    "picture": cmd_picture,
    "wifi": cmd_wifi,
    "upi": cmd_upi,
    "vcard": cmd_vcard,
    "sms": cmd_sms,
    "email": cmd_email,
    "barcode": cmd_barcode,
    "verify": cmd_verify,
}


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    # Setup logging before any command runs
    level = "DEBUG" if args.verbose else "INFO"
    setup_logging(level=level, log_file=args.log_file, json_format=args.json_logs)
    audit("cli.start", logger=log, command=args.command, verbose=args.verbose)

    if args.command is None:
        parser.print_help()
        return 1

    try:
        status = COMMANDS[args.command](args) or 0
    except QuantumQRError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    audit("cli.done", logger=log, command=args.command, status=status)
    return status


if __name__ == "__main__":
    sys.exit(main())
