#!/usr/bin/env python3
"""Send a test proximity alert to one Telegram chat.

⚠️  WARNING: This script sends a REAL Telegram message!

This script creates a synthetic seismic event near a given position and
sends the same alert and advice messages the poller would send to a user
at that position. Nothing is written to Firestore except when --with-advice
reads the advice catalog.

Usage:
    # Dry run (print the messages, no sends)
    python scripts/send_test_alert.py --chat-id 123456789 --dry-run

    # Send alert only
    python scripts/send_test_alert.py --chat-id 123456789

    # Send alert followed by the advice for the band
    python scripts/send_test_alert.py --chat-id 123456789 --with-advice

Environment:
    CONFIG_PATH: Path to config file (default: config/config.yaml)
    TELEGRAM_BOT_TOKEN: Bot token when no config file is used
"""

import argparse
import logging
import sys
from datetime import datetime, timezone

from safequake.core.advice import select_advice
from safequake.core.formatter import format_telegram_advice, format_telegram_alert
from safequake.core.geo import calculate_distance
from safequake.core.seismic_event import SeismicEvent
from safequake.shell.config_loader import load_config
from safequake.shell.firestore_client import FirestoreClient, FirestoreConfig
from safequake.shell.telegram_client import TelegramClient

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
logger = logging.getLogger(__name__)


def create_test_event(
    magnitude: float = 4.5,
    place: str = "[TEST] 3 km SE Caserta (CE)",
    latitude: float = 41.0,
    longitude: float = 14.0,
) -> SeismicEvent:
    """Create a synthetic test event.

    Args:
        magnitude: Event magnitude
        place: Location description
        latitude: Epicenter latitude
        longitude: Epicenter longitude

    Returns:
        Synthetic SeismicEvent
    """
    now = datetime.now(timezone.utc)
    return SeismicEvent(
        id="test-" + now.strftime("%Y%m%d%H%M%S"),
        magnitude=magnitude,
        mag_type="ML",
        place=place,
        time=now,
        latitude=latitude,
        longitude=longitude,
        depth_km=10.0,
        author="SURVEY-INGV",
    )


def main() -> int:
    parser = argparse.ArgumentParser(description="Send a test proximity alert via Telegram")
    parser.add_argument("--chat-id", type=int, required=True, help="Recipient Telegram chat id")
    parser.add_argument("--magnitude", type=float, default=4.5, help="Event magnitude")
    parser.add_argument("--latitude", type=float, default=41.0, help="Epicenter latitude")
    parser.add_argument("--longitude", type=float, default=14.0, help="Epicenter longitude")
    parser.add_argument("--user-latitude", type=float, default=41.05, help="Recipient latitude")
    parser.add_argument("--user-longitude", type=float, default=14.05, help="Recipient longitude")
    parser.add_argument(
        "--with-advice",
        action="store_true",
        help="Also send the advice for the magnitude band (reads the catalog)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print what would be sent without actually sending",
    )
    args = parser.parse_args()

    config = load_config()

    event = create_test_event(
        magnitude=args.magnitude,
        latitude=args.latitude,
        longitude=args.longitude,
    )
    distance = round(
        calculate_distance(args.user_latitude, args.user_longitude, event.latitude, event.longitude),
        2,
    )

    messages = [format_telegram_alert(event, distance, config.proximity_radius_km)]

    if args.with_advice:
        store = FirestoreClient(FirestoreConfig(
            database=config.firestore_database,
            collections=config.collections,
        ))
        selection = select_advice(event.magnitude, store.get_advice_catalog())
        if selection is None:
            logger.warning("No advice for M%.1f; sending the alert only", event.magnitude)
        else:
            messages.append(format_telegram_advice(selection.advice, selection.band.label))

    logger.info("Test event M%.1f at %.2f km from the recipient", event.magnitude, distance)

    if args.dry_run:
        logger.info("DRY RUN - Would send %d message(s) to %s:", len(messages), args.chat_id)
        for text in messages:
            logger.info("\n%s\n", text)
        return 0

    client = TelegramClient(config.telegram_bot_token, retry_policy=config.retry)
    failures = 0
    for text in messages:
        response = client.send_message(args.chat_id, text)
        if response.success:
            logger.info("  ✓ Sent after %d attempt(s)", response.attempts)
        else:
            failures += 1
            logger.error("  ✗ Failed: %s", response.error)

    return 0 if failures == 0 else 1


if __name__ == "__main__":
    sys.exit(main())
