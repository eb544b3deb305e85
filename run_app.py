import os

import uvicorn


def main() -> None:
    """Run the geoblock-protected application with uvicorn.

    Configuration comes from GEOBLOCK_* environment variables (see geoblock.settings).
    """
    uvicorn.run(
        "geoblock.main:create_app",
        factory=True,
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "8000")),
    )


if __name__ == "__main__":
    main()
