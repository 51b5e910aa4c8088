import logging
import sys

import typer

from nodepoolctl.commands import nodepool
from nodepoolctl.config import Config
from nodepoolctl.logging import setup_logger

app = typer.Typer()

# Global debug flag
debug_mode = False

# Configure logging
def setup_logging(debug: bool = False):
    """Configure logging based on debug mode."""
    log_level = logging.DEBUG if debug else getattr(logging, Config.LOG_LEVEL, logging.INFO)
    setup_logger(level=log_level)

# Add all command groups
app.add_typer(nodepool.app, name="nodepool")

# Global options callback
@app.callback()
def main(
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug logging"),
):
    """nodepoolctl - safe node pool creation and teardown."""
    global debug_mode
    debug_mode = debug
    setup_logging(debug)
    if debug:
        logging.debug("Debug mode enabled")

@app.command("serve")
def serve(
    host: str = typer.Option("127.0.0.1", help="Address to bind"),
    port: int = typer.Option(8000, help="Port to listen on"),
):
    """Run the HTTP API."""
    import uvicorn
    uvicorn.run("nodepoolctl.api.main:app", host=host, port=port)

if __name__ == "__main__":
    try:
        app()
    except Exception as e:
        if debug_mode:
            import traceback
            logging.error(f"Unhandled exception: {e}\n{traceback.format_exc()}")
        else:
            logging.error(f"Error: {e}")
        sys.exit(1)
