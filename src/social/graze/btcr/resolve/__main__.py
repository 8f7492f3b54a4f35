from typing import List
import argparse
import aiohttp
import asyncio
import json
import logging

from social.graze.btcr.app.backends import create_bitcoin_connection
from social.graze.btcr.app.config import Settings
from social.graze.btcr.resolve.driver import BtcrResolver
from social.graze.btcr.resolve.exceptions import ResolutionException

logger = logging.getLogger(__name__)


async def realMain() -> None:
    parser = argparse.ArgumentParser(prog="resolve", description="Resolve did:btcr DIDs")
    parser.add_argument("subject", nargs="+", help="The DID(s) to resolve.")
    parser.add_argument(
        "--bitcoin-connection",
        default=None,
        help="The blockchain backend to use ('blockcypherapi' or 'esplora'). Defaults to the configured one.",
    )

    args = vars(parser.parse_args())

    subjects: List[str] = args.get("subject", [])

    overrides = {}
    if args.get("bitcoin_connection") is not None:
        overrides["bitcoin_connection"] = args["bitcoin_connection"]
    settings = Settings(**overrides)  # type: ignore

    async with aiohttp.ClientSession(
        timeout=aiohttp.ClientTimeout(total=settings.http_timeout)
    ) as session:
        resolver = BtcrResolver(
            create_bitcoin_connection(settings, session),
            session,
            max_hops=settings.max_spend_hops,
        )
        for subject in subjects:
            try:
                result = await resolver.resolve(subject)
                if result is None:
                    print(f"{subject} is not a did:btcr identifier")
                    continue
                print(json.dumps(result.to_json(), indent=2))
            except ResolutionException:
                logging.exception("Exception resolving subject %s", subject)


def main() -> None:
    logging.basicConfig()
    asyncio.run(realMain())


if __name__ == "__main__":
    main()
