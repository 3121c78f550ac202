"""Entry point — builds a default chart session and logs a summary of it."""

import sys

from loguru import logger

from candlelab.config import settings


def configure_logging(level: str | None = None) -> None:
    logger.remove()
    logger.add(
        sys.stderr,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>",
        level=level or settings.log_level,
    )


def main():
    configure_logging()

    from candlelab.session import ChartSession

    session = ChartSession()
    display = session.display_bars()
    last = display[-1]
    logger.info("=" * 60)
    logger.info("  candlelab — synthetic OHLC playground")
    logger.info("=" * 60)
    logger.info(f"Timeframe {session.timeframe}: {len(display)} bars, last close {last.close}")

    for kind, outputs in session.indicator_series().items():
        latest = {name: values[-1] for name, values in outputs.items()}
        logger.info(f"{kind}: {latest}")

    # Demonstrate an undoable edit on the newest bar
    session.edit_bar(last.index, "close", last.close + 1.0)
    logger.info(f"Edited close -> {session.display_bars()[-1].close}")
    session.undo()
    logger.info(f"Undone close -> {session.display_bars()[-1].close}")


if __name__ == "__main__":
    main()
