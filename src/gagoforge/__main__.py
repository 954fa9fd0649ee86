import asyncio

from gagoforge.app import ForgeApp, setup_logging


def main():
    setup_logging()
    app = ForgeApp()
    asyncio.run(app.run())


if __name__ == "__main__":
    main()
