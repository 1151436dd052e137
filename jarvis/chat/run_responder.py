import argparse

import httpx

from jarvis.chat.responder import ResponderAgent
from jarvis.config import AppConfig
from jarvis.observability import get_logger, setup_logging


logger = get_logger(__name__)


def run_responder(single_tick_mode: bool = False, since: int = None):
    config = AppConfig.from_env()
    setup_logging(config.log_level)

    with httpx.Client(
        base_url=config.responder.api_url,
        timeout=config.responder.timeout_seconds
    ) as client:
        if single_tick_mode:
            # Cron-style run: the caller keeps the cursor between runs
            agent = ResponderAgent(client, cursor=since or 0)
            replies = agent.poll_once()
            logger.info("Single tick complete. Posted %d replies.", len(replies))
            print(agent.cursor)
        else:
            agent = ResponderAgent(client, cursor=since)
            logger.info(
                "Polling %s every %.1fs",
                config.responder.api_url, config.responder.poll_interval_seconds
            )
            agent.run(config.responder.poll_interval_seconds)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Jarvis chat responder")
    parser.add_argument("--single-tick", action="store_true", help="Poll once, print the next cursor and exit (for cron/CI).")
    parser.add_argument("--since", type=int, default=None, help="Cursor to start from (serverTime of a previous run).")
    args = parser.parse_args()

    try:
        run_responder(single_tick_mode=args.single_tick, since=args.since)
    except KeyboardInterrupt:
        logger.info("Responder stopped.")
