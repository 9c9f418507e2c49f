"""Command-line entry point.

Usage:
    # Gallery
    python -m selfiegram list
    python -m selfiegram add photo.jpg --title "Beach" --lat 25.03 --lon 121.56
    python -m selfiegram rename <id> "New title"
    python -m selfiegram delete <id>

    # Overlays
    python -m selfiegram overlays download --refresh

    # Validate configuration file
    python -m selfiegram config validate --config /path/to/config.yaml
"""

import argparse
import asyncio
import json
import sys
from uuid import UUID

from PIL import Image, UnidentifiedImageError
from pydantic import ValidationError

from selfiegram.models.errors import SelfiegramError
from selfiegram.models.selfie import Coordinate


def create_parser() -> argparse.ArgumentParser:
    """Create the CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="selfiegram",
        description="Selfie gallery storage and overlay asset cache",
    )
    parser.add_argument("--config", "-c", help="Path to a YAML configuration file")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    list_parser = subparsers.add_parser("list", help="List selfies, newest first")
    list_parser.add_argument(
        "--skip-unreadable",
        action="store_true",
        help="Skip corrupt records instead of failing",
    )

    show_parser = subparsers.add_parser("show", help="Show one selfie as JSON")
    show_parser.add_argument("selfie_id", type=UUID)

    add_parser = subparsers.add_parser("add", help="Add an image file as a new selfie")
    add_parser.add_argument("image", help="Path to the image file")
    add_parser.add_argument("--title", help="Selfie title")
    add_parser.add_argument("--lat", type=float, help="Latitude")
    add_parser.add_argument("--lon", type=float, help="Longitude")

    rename_parser = subparsers.add_parser("rename", help="Change a selfie's title")
    rename_parser.add_argument("selfie_id", type=UUID)
    rename_parser.add_argument("title")

    delete_parser = subparsers.add_parser("delete", help="Delete a selfie and its image")
    delete_parser.add_argument("selfie_id", type=UUID)

    # overlays subcommand
    overlays_parser = subparsers.add_parser("overlays", help="Overlay cache commands")
    overlays_subparsers = overlays_parser.add_subparsers(
        dest="overlays_command",
        help="Overlay commands",
    )
    overlays_subparsers.add_parser("list", help="List overlays available in the cache")
    overlays_subparsers.add_parser("refresh", help="Download the overlay manifest")
    download_parser = overlays_subparsers.add_parser("download", help="Download overlay assets")
    download_parser.add_argument(
        "--refresh",
        action="store_true",
        help="Refresh the manifest before downloading",
    )

    # config subcommand
    config_parser = subparsers.add_parser(
        "config",
        help="Configuration management commands",
    )
    config_subparsers = config_parser.add_subparsers(
        dest="config_command",
        help="Config commands",
    )
    validate_parser = config_subparsers.add_parser(
        "validate",
        help="Validate a configuration file",
    )
    validate_parser.add_argument(
        "--config",
        "-c",
        dest="validate_path",
        required=True,
        help="Path to the configuration file to validate",
    )

    return parser


def _run_gallery_command(app, args: argparse.Namespace) -> int:
    gallery = app.gallery

    if args.command == "list":
        for selfie in gallery.list_gallery(skip_unreadable=args.skip_unreadable):
            print(f"{selfie.id}  {selfie.created.isoformat()}  {selfie.title}")
        return 0

    if args.command == "show":
        selfie = gallery.get_selfie(args.selfie_id)
        data = selfie.model_dump(mode="json")
        data["has_image"] = app.store.get_image(selfie.id) is not None
        print(json.dumps(data, indent=2, ensure_ascii=False))
        return 0

    if args.command == "add":
        if (args.lat is None) != (args.lon is None):
            print("--lat and --lon must be given together", file=sys.stderr)
            return 2
        try:
            with Image.open(args.image) as image:
                image.load()
                picture = image.copy()
        except (OSError, UnidentifiedImageError) as e:
            print(f"Cannot open image {args.image}: {e}", file=sys.stderr)
            return 1
        position = None
        if args.lat is not None:
            try:
                position = Coordinate(latitude=args.lat, longitude=args.lon)
            except ValidationError:
                print(
                    "--lat must be within [-90, 90] and --lon within [-180, 180]",
                    file=sys.stderr,
                )
                return 2
        selfie = gallery.create_selfie(picture, title=args.title, position=position)
        print(selfie.id)
        return 0

    if args.command == "rename":
        selfie = gallery.rename(args.selfie_id, args.title)
        print(f"{selfie.id}  {selfie.title}")
        return 0

    if args.command == "delete":
        gallery.remove(args.selfie_id)
        return 0

    return 1


async def _run_overlays_command(app, args: argparse.Namespace) -> int:
    overlays = app.overlays

    if args.overlays_command == "list":
        available = overlays.available_overlays()
        for overlay in available:
            print(overlay.info.icon)
        print(f"{len(available)} of {len(overlays.overlay_info)} overlays available")
        return 0

    if args.overlays_command == "refresh":
        manifest = await overlays.refresh_overlays()
        print(f"{len(manifest)} overlays in manifest")
        return 0

    if args.overlays_command == "download":
        report = await overlays.load_overlay_assets(refresh=args.refresh)
        print(f"{len(report.downloaded)} of {report.requested} files downloaded")
        for name in report.failed:
            print(f"failed: {name}", file=sys.stderr)
        return 0 if report.complete else 1

    return 1


def run(argv: list[str] | None = None) -> int:
    """Run the CLI and return the exit code."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    if args.command == "config":
        if args.config_command != "validate":
            parser.parse_args(["config", "--help"])
            return 1
        # Import here to avoid loading the application for config validation
        from selfiegram.config.validators import validate_config_command

        return validate_config_command(args.validate_path)

    if args.command == "overlays" and args.overlays_command is None:
        parser.parse_args(["overlays", "--help"])
        return 1

    from selfiegram.app import create_app

    try:
        app = create_app(config_path=args.config)
        if args.command == "overlays":
            return asyncio.run(_run_overlays_command(app, args))
        return _run_gallery_command(app, args)
    except SelfiegramError as e:
        print(e.to_response().model_dump_json(), file=sys.stderr)
        return 1
    except FileNotFoundError as e:
        print(str(e), file=sys.stderr)
        return 1


def main() -> None:
    """Entry point for the selfiegram command."""
    sys.exit(run())


if __name__ == "__main__":
    main()
