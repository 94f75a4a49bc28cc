"""CLI entry point for QR Art Poster."""

import argparse
import os
import sys
import time

from qr_poster import QR_SIZE_MAX, QR_SIZE_MIN, __version__
from qr_poster.config import Position, Theme


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="qr-poster",
        description="Compose QR codes with artistic poster backgrounds.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Open the editor in the browser at http://127.0.0.1:8000
  qr-poster serve --api gemini

  # Render a poster with the default background
  qr-poster render --url "https://example.com" --title "Join us" -o poster.png

  # Render with AI-generated background art
  qr-poster render --url "https://example.com" --generate \\
    --prompt "misty pine forest at dawn" --theme nature -o poster.png
        """,
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    # serve
    serve = sub.add_parser("serve", help="Run the browser editor")
    serve.add_argument("--host", default="127.0.0.1", help="Bind address. Default: 127.0.0.1")
    serve.add_argument("--port", type=int, default=8000, help="Port. Default: 8000")
    serve.add_argument(
        "--api",
        default=os.environ.get("QR_POSTER_API", "gemini"),
        choices=["gemini", "huggingface", "replicate"],
        help="Background art backend. Default: $QR_POSTER_API or gemini",
    )
    serve.add_argument("--reload", action="store_true", help="Restart the server when source files change")

    # render
    render = sub.add_parser("render", help="Render a poster to an image file")
    render.add_argument("--url", default="https://github.com", help="URL or text to encode in the QR code")
    render.add_argument("--title", default="SCAN ME", help="Poster title")
    render.add_argument("--subtitle", default="Discover the future", help="Poster subtitle")
    render.add_argument(
        "--theme",
        default=Theme.CYBERPUNK.value,
        choices=[t.value for t in Theme],
        help="Text style preset. Default: cyberpunk",
    )
    render.add_argument(
        "--position",
        default=Position.CENTER.value,
        choices=[p.value for p in Position],
        help="Where the QR code sits on the poster. Default: center",
    )
    render.add_argument(
        "--size",
        type=int,
        default=180,
        help=f"QR code size in pixels ({QR_SIZE_MIN}-{QR_SIZE_MAX}). Default: 180",
    )
    render.add_argument(
        "--opacity",
        type=float,
        default=1.0,
        help="QR opacity (0.0-1.0). Default: 1.0",
    )
    render.add_argument("--qr-color", default="#000000", help="QR module color. Default: #000000")
    render.add_argument("--qr-bg-color", default="#ffffff", help="QR container color. Default: #ffffff")

    background = render.add_mutually_exclusive_group()
    background.add_argument(
        "--background",
        default=None,
        help="Background image URL or path (default: a random photo)",
    )
    background.add_argument(
        "--no-background",
        action="store_true",
        help="Use the plain gradient background",
    )
    background.add_argument(
        "--generate",
        action="store_true",
        help="Generate the background with AI from --prompt",
    )
    render.add_argument(
        "--prompt",
        default="A futuristic city at night with neon lights",
        help="Art prompt used with --generate",
    )
    render.add_argument(
        "--api",
        default="gemini",
        choices=["gemini", "huggingface", "replicate"],
        help="Background art backend used with --generate. Default: gemini",
    )
    render.add_argument(
        "--timeout",
        type=float,
        default=300,
        help="Seconds to wait for the art service per attempt. Default: 300",
    )
    render.add_argument(
        "--retries",
        type=int,
        default=1,
        help="Attempts against the art service. Default: 1",
    )
    render.add_argument(
        "--scale",
        type=float,
        default=2.0,
        help="Output scale relative to the 600x800 preview. Default: 2.0",
    )
    render.add_argument(
        "--output", "-o",
        default="qr_poster.png",
        help="Output image path (.png, .jpg or .webp). Default: qr_poster.png",
    )
    render.add_argument(
        "--overwrite",
        action="store_true",
        help="Overwrite output file without prompting",
    )

    return parser


def _render(args: argparse.Namespace) -> int:
    # Lazy imports for faster --help
    from qr_poster.api_client import get_client
    from qr_poster.config import ConfigError
    from qr_poster.export import export_poster
    from qr_poster.state import PosterSession

    print(f"QR Art Poster v{__version__}")
    print("=" * 50)

    if os.path.exists(args.output) and not args.overwrite:
        response = input(f"  Output file '{args.output}' already exists. Overwrite? [y/N] ")
        if response.lower() not in ("y", "yes"):
            print("  Aborted.")
            return 0

    session = PosterSession()
    changes = dict(
        url=args.url,
        title=args.title,
        subtitle=args.subtitle,
        theme=args.theme,
        qr_position=args.position,
        qr_size=args.size,
        qr_opacity=args.opacity,
        qr_color=args.qr_color,
        qr_bg_color=args.qr_bg_color,
        background_prompt=args.prompt,
    )
    if args.background:
        changes["background_image_url"] = args.background
    elif args.no_background or args.generate:
        changes["background_image_url"] = None

    try:
        config = session.update(**changes)
    except ConfigError as e:
        print(f"\n  ERROR: {e}", file=sys.stderr)
        return 1
    if config.qr_size != args.size:
        print(f"  ⚠️  QR size clamped to {config.qr_size}px", file=sys.stderr)

    if args.generate:
        print(f"\n[1/2] Generating background via {args.api} API...")
        print(f"  Prompt:  {args.prompt}")
        print(f"  Theme:   {args.theme}")
        try:
            client = get_client(
                args.api, timeout=args.timeout, max_retries=args.retries, spinner=True,
            )
            print(f"  Backend: {client.name()}")
        except (ConnectionError, ValueError, ImportError) as e:
            print(f"\n  ERROR: {e}", file=sys.stderr)
            return 1

        start_time = time.time()
        image = session.generate_background(client)
        if session.notifications:
            print(f"\n  ERROR: {session.notifications[-1]}", file=sys.stderr)
            return 1
        if image:
            print(f"  ✓ Generation completed in {time.time() - start_time:.1f}s")
        else:
            print("  ⚠️  The service returned no image; using the gradient background.")
    else:
        print("\n[1/2] Using " + (
            f"background: {config.background_image_url}"
            if config.background_image_url else "gradient background"
        ))

    print(f"\n[2/2] Rendering poster to: {args.output}")
    try:
        output_path = export_poster(session.config, args.output, scale=args.scale)
    except (ValueError, FileNotFoundError, OSError) as e:
        print(f"\n  ERROR: {e}", file=sys.stderr)
        return 1

    print(f"\n✅ Done! Your poster is at: {output_path}")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command == "serve":
        from qr_poster.web import run

        print(f"QR Art Poster v{__version__}: editor at http://{args.host}:{args.port}")
        run(host=args.host, port=args.port, api=args.api, reload=args.reload)
        return 0

    return _render(args)


if __name__ == "__main__":
    sys.exit(main())
