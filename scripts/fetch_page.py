import asyncio
import os
import sys
from urllib.parse import quote

# Ensure src is in pythonpath
sys.path.append(os.path.join(os.path.dirname(__file__), "..", "src"))

from dotenv import load_dotenv
load_dotenv()

from mw_rest_client.core.logging import configure_logging
from mw_rest_client.wiki.registry import WikiRegistry
from mw_rest_client.wiki.rest_client import MediaWikiRestClient
from mw_rest_client.wiki.session import SessionPool

# Usage: python scripts/fetch_page.py "Page title" [wiki-key]


async def main():
    if len(sys.argv) < 2:
        print("usage: fetch_page.py TITLE [WIKI]")
        sys.exit(2)

    title = sys.argv[1]
    configure_logging()

    registry = WikiRegistry.from_file()
    if len(sys.argv) > 2:
        registry.select(sys.argv[2])

    sessions = SessionPool()
    client = MediaWikiRestClient(registry, sessions=sessions)
    try:
        print(f"Wiki: {registry.current().sitename} ({client.rest_api_base()})")
        page = await client.rest_get(f"/v1/page/{quote(title, safe='')}/bare")
        print(f"Title: {page['title']}")
        print(f"Latest revision: {page['latest']['id']} ({page['latest']['timestamp']})")
        print(f"URL: {client.page_url(page['title'])}")
    finally:
        await sessions.aclose()

if __name__ == "__main__":
    asyncio.run(main())
