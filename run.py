#!/usr/bin/env python3
"""
Entry point for the Boggle service.

Usage:
    python run.py                    # Run the web server (default)
    python run.py server             # Run the web server explicitly
    python run.py janitor            # Run one janitor sweep and exit (for cron)

Environment Variables:
    FLASK_ENV: development, production or testing (default: development)
    PORT: Port to run on (default: 5000)
    LOG_LEVEL: Root logging level (default: INFO)
"""
import logging
import os
import sys


def configure_logging():
    logging.basicConfig(
        level=os.getenv('LOG_LEVEL', 'INFO').upper(),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )


def run_server():
    """Run the web service."""
    from boggle.app import create_app

    app = create_app()
    port = int(os.getenv('PORT', 5000))
    debug = os.getenv('FLASK_ENV', 'development') == 'development'

    logging.getLogger(__name__).info(f"Starting Boggle on port {port}...")
    app.run(host='0.0.0.0', port=port, debug=debug)


def run_janitor():
    """Run a single janitor sweep."""
    from boggle.app import create_app

    app = create_app()
    with app.app_context():
        report = app.janitor.sweep()
    print(report)


if __name__ == '__main__':
    configure_logging()
    mode = sys.argv[1] if len(sys.argv) > 1 else 'server'

    if mode == 'server':
        run_server()
    elif mode == 'janitor':
        run_janitor()
    else:
        print(f"Unknown mode: {mode}")
        print("Usage: python run.py [server|janitor]")
        sys.exit(1)
