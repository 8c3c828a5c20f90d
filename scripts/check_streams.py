#!/usr/bin/env python
"""Query Twitch once for the configured broadcasters and print what is live.

Run from the project root::

    python scripts/check_streams.py --login shroud --login pokimane

Without ``--login`` the logins from ``TWITCH_USER_LOGINS`` are used.  The
Twitch credentials are read from ``TWITCH_CLIENT_ID`` and
``TWITCH_CLIENT_SECRET`` (environment or ``.env``).

For every live session the category and the archive video are fetched
concurrently; ``--thumbnails`` also downloads the stream thumbnail and
reports its size.

Exit codes:
    0: Success (including "nobody is live").
    1: Missing logins, rejected credentials, or a Twitch API failure.
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys

# Ensure the src layout is on sys.path when run as a standalone script.
_SCRIPT_DIR = os.path.dirname(os.path.abspath(__file__))
_SRC_DIR = os.path.join(os.path.dirname(_SCRIPT_DIR), "src")
if _SRC_DIR not in sys.path:
    sys.path.insert(0, _SRC_DIR)


async def _run(logins: list[str], thumbnails: bool) -> int:
    """Print the live sessions of *logins*.

    Args:
        logins: Broadcaster logins to check.
        thumbnails: Also download each session's thumbnail.

    Returns:
        Process exit code.
    """
    from stream_herald.config.settings import get_settings  # noqa: PLC0415
    from stream_herald.core.exceptions import StreamHeraldError  # noqa: PLC0415
    from stream_herald.core.logging_config import configure_logging  # noqa: PLC0415
    from stream_herald.twitch.client import create_helix_client  # noqa: PLC0415

    settings = get_settings()
    configure_logging(settings.log_level)
    logins = logins or settings.twitch_user_logins
    if not logins:
        print(
            "[check_streams] ERROR: no logins given and TWITCH_USER_LOGINS is empty.",
            file=sys.stderr,
        )
        return 1

    try:
        async with await create_helix_client(settings) as client:
            sessions = await client.get_streams_by_login(logins)
            if not sessions:
                print(f"[check_streams] None of {', '.join(logins)} is live.")
                return 0

            for session in sessions:
                category, video = await asyncio.gather(
                    client.get_category(session),
                    client.get_video_by_stream(session),
                )
                print(f"{session.broadcaster_login}: {session.title!r}")
                print(f"  category : {category.name if category else 'unknown'}")
                print(f"  language : {session.language}")
                print(f"  archive  : {video.url if video else 'not found'}")
                if thumbnails:
                    image = await client.get_thumbnail(
                        session,
                        width=settings.thumbnail_width,
                        height=settings.thumbnail_height,
                    )
                    size = len(image.getvalue()) if image else 0
                    print(f"  thumbnail: {size} bytes")
    except StreamHeraldError as exc:
        print(f"[check_streams] ERROR: {exc}", file=sys.stderr)
        return 1
    return 0


def main() -> None:
    """Parse CLI arguments and run the check."""
    parser = argparse.ArgumentParser(
        description="Print which tracked Twitch broadcasters are currently live.",
    )
    parser.add_argument(
        "--login",
        action="append",
        default=[],
        help="Broadcaster login to check (repeatable).",
    )
    parser.add_argument(
        "--thumbnails",
        action="store_true",
        help="Download each live session's thumbnail and report its size.",
    )
    args = parser.parse_args()
    sys.exit(asyncio.run(_run([login.lower() for login in args.login], args.thumbnails)))


if __name__ == "__main__":
    main()
