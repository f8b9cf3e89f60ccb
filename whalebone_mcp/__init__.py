from whalebone_mcp.server import create_server
from .log import configure_logging
from .settings import get_settings


def main():
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_format)
    create_server(settings).run(transport=settings.mcp_transport_mode)


if __name__ == "__main__":
    main()
