"""Simple entrypoint to open the Chroma wardrobe store locally."""

import asyncio

from chroma_app.app import ChromaApp


async def _summary() -> dict:
    app = await ChromaApp().open()
    try:
        stats = await app.admin.dashboard_stats()
        return {"schema_version": app.store.schema_version, **stats}
    finally:
        await app.close()


def main() -> None:
    print(asyncio.run(_summary()))


if __name__ == "__main__":
    main()
