import uvicorn
import argparse
import asyncio
import subprocess
from pathlib import Path
from src.api.app import app
from src.core.services.db_service import get_db_service
from src.config.settings import settings
from src.utils.logging import logger

SCHEMA_PATH = Path(__file__).parent / "docker" / "init.sql"

async def init_db(schema_path: Path):
    """Create the chat tables (and development copies of the catalog tables)."""
    db_service = get_db_service()
    try:
        await db_service.init_schema(schema_path.read_text(encoding="utf-8"))
    finally:
        await db_service.close()

if __name__ == "__main__":

    parser = argparse.ArgumentParser(description='Lingua chat relay')
    subparsers = parser.add_subparsers(dest='command', help='Commands')

    # Server command
    server_parser = subparsers.add_parser('serve', help='Run the server')
    server_parser.add_argument('--mode', choices=['api', 'ui'], required=True,
                             help='Run mode: api for the FastAPI relay or ui for the Streamlit chat')
    server_parser.add_argument('--host', default='0.0.0.0', help='Host to run the server on')
    server_parser.add_argument('--port', type=int, default=8000, help='Port to run the server on')

    # Database command
    init_db_parser = subparsers.add_parser('init-db', help='Create the chat tables')
    init_db_parser.add_argument('--schema', type=Path, default=SCHEMA_PATH,
                              help='DDL script to apply')

    args = parser.parse_args()

    if args.command == 'serve':
        if args.mode == 'api':
            logger.info(f"Starting relay on {args.host}:{args.port}, provider {settings.LLM_BASE_URL}")
            uvicorn.run(app, host=args.host, port=args.port)
        elif args.mode == 'ui':
            subprocess.run(["streamlit", "run", "src/ui/streamlit_app.py"])
    elif args.command == 'init-db':
        asyncio.run(init_db(args.schema))
    else:
        parser.print_help()
