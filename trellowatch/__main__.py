import argparse

import uvicorn

from trellowatch.config import settings


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="trellowatch",
        description="Keep a Trello board's To Do / Done / Storage lists in step with active project checklists.",
    )
    parser.add_argument("--board", help="trello board id (defaults to TRELLO_BOARD_ID)")
    parser.add_argument("--key", help="trello api key (defaults to TRELLO_KEY)")
    parser.add_argument("--token", help="trello api token (defaults to TRELLO_TOKEN)")
    parser.add_argument("--host", help="server host name used in webhook callback URLs (defaults to HOST)")
    parser.add_argument("--port", type=int, help="server port (defaults to PORT)")
    return parser


def apply_overrides(args: argparse.Namespace) -> None:
    overrides = {
        "TRELLO_BOARD_ID": args.board,
        "TRELLO_KEY": args.key,
        "TRELLO_TOKEN": args.token,
        "HOST": args.host,
        "PORT": args.port,
    }
    for name, value in overrides.items():
        if value:
            setattr(settings, name, value)


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    apply_overrides(parser.parse_args(argv))

    missing = settings.missing()
    if missing:
        parser.error(f"the board id, Trello key and token, host, and port are all required (missing: {', '.join(missing)})")

    from trellowatch.main import app

    uvicorn.run(app, host="0.0.0.0", port=settings.PORT)


if __name__ == "__main__":
    main()
