# HTTP API for the browser client.

from product_helper.api.app import create_app, run_server

__all__ = ["create_app", "run_server"]
