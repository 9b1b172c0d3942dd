from __future__ import annotations

import os

import uvicorn


def main() -> None:
    host = os.getenv("STOREFRONT_HOST", "0.0.0.0")
    port = int(os.getenv("STOREFRONT_PORT", "3000"))
    uvicorn.run("storefront.app:create_app", factory=True, host=host, port=port, reload=False)


if __name__ == "__main__":
    main()
