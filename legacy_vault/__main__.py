"""Run the session validation server: ``python -m legacy_vault``."""
import logging

from aiohttp import web

from .conf import VALIDATOR_HOST, VALIDATOR_PORT
from .validator import create_app


def main() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    web.run_app(create_app(), host=VALIDATOR_HOST, port=VALIDATOR_PORT)


if __name__ == "__main__":
    main()
