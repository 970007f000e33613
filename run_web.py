#!/usr/bin/env python
"""
Start the advisory FastAPI service with uvicorn.
"""

import argparse
import logging
import os
import sys

import uvicorn

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from agri_advisor.infra.config import get_config

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def main():
    cfg = get_config()
    parser = argparse.ArgumentParser(
        description="Start the agricultural advisory API",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python run_web.py                    # default settings
    python run_web.py --port 8080        # custom port
    python run_web.py --reload           # auto reload (development)
        """
    )
    parser.add_argument('--host', type=str, default='0.0.0.0', help='bind address (default: 0.0.0.0)')
    parser.add_argument('--port', type=int, default=cfg.fastapi_port, help=f'port (default: {cfg.fastapi_port})')
    parser.add_argument('--reload', action='store_true', help='enable auto reload')
    parser.add_argument('--workers', type=int, default=1, help='worker processes (default: 1)')
    parser.add_argument(
        '--weather-provider',
        type=str,
        choices=['mock', 'intranet'],
        default=None,
        help='override WEATHER_PROVIDER',
    )
    args = parser.parse_args()

    if args.weather_provider:
        os.environ['WEATHER_PROVIDER'] = args.weather_provider
        get_config.cache_clear()

    host = args.host if args.host != '0.0.0.0' else 'localhost'
    logger.info(f"Starting API server: http://{host}:{args.port}")
    logger.info(f"API docs: http://{host}:{args.port}/docs")

    uvicorn.run(
        "agri_advisor.api.server:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        workers=args.workers if not args.reload else 1,
        log_level="info"
    )


if __name__ == '__main__':
    main()
