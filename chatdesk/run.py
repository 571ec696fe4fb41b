"""Sidecar launcher used by the desktop shell."""
import uvicorn

from chatdesk.config import get_config


def main() -> None:
    config = get_config()
    uvicorn.run("chatdesk.main:app", host=config.server.host, port=config.server.port)


if __name__ == "__main__":
    main()
