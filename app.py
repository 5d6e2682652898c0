#!/usr/bin/env python3
"""
Session server for the image/video labeling tool.
Flask application serving the labeling page, load/save of versioned sessions
and project export, plus a WebSocket feed of save events.
"""

import argparse
import asyncio
import json
import logging
import os
from pathlib import Path

import websockets
import websockets.exceptions
from flask import Flask

from api import create_sat_api
from core.storage import Storage
from logging_setup import install_flask_request_hooks, setup_logging

BASE_DIR = Path(__file__).parent.resolve()

logger = logging.getLogger("sat.app")


class WebSocketManager:
  """Fans save events from Flask request threads out to WebSocket clients."""

  def __init__(self):
    self.connections = set()
    self.message_queue: asyncio.Queue = asyncio.Queue()
    self.loop = None

  def add_connection(self, websocket):
    self.connections.add(websocket)

  def remove_connection(self, websocket):
    self.connections.discard(websocket)

  def set_event_loop(self, loop):
    """Set the event loop for cross-thread communication"""
    self.loop = loop

  def emit_thread_safe(self, event, data, namespace=None):
    """Emit message from any thread - thread-safe"""
    if self.loop is None:
      logger.debug("emit_thread_safe: no event loop yet, dropping %s", event)
      return
    message = {'event': event, 'data': data, 'namespace': namespace}
    logger.debug("Queuing WebSocket message: event=%s key=%s", event, data.get('key', '-'))
    asyncio.run_coroutine_threadsafe(self.message_queue.put(message), self.loop)

  async def process_messages(self):
    """Process queued messages (call this in the WebSocket event loop)"""
    while True:
      message = await self.message_queue.get()
      try:
        await self._emit_to_clients(message['event'], message['data'], message['namespace'])
      finally:
        self.message_queue.task_done()

  async def _emit_to_clients(self, event, data, namespace=None):
    message = json.dumps({'event': event, 'data': data, 'namespace': namespace})
    dead_connections = set()
    for websocket in self.connections:
      try:
        await websocket.send(message)
      except websockets.exceptions.ConnectionClosed as e:
        logger.debug("WebSocket connection closed during send: %s", e)
        dead_connections.add(websocket)

    for dead_conn in dead_connections:
      self.connections.discard(dead_conn)
    if dead_connections:
      logger.info("Cleaned up %d dead WebSocket connections. Active: %d", len(dead_connections), len(self.connections))


def create_app(storage: Storage | None = None, notifier: WebSocketManager | None = None) -> Flask:
  app = Flask(__name__, template_folder=str(BASE_DIR / "templates"))
  install_flask_request_hooks(app)
  storage = storage or Storage()
  app.register_blueprint(create_sat_api(storage, notifier, name="sat_api"))

  @app.route("/healthz")
  def healthz():
    return {"ok": True}

  return app


async def websocket_handler(websocket, manager: WebSocketManager):
  """Handle one WebSocket client: register it and answer pings."""
  logger.info("WebSocket connection established from %s", websocket.remote_address)
  manager.add_connection(websocket)
  try:
    async for message in websocket:
      try:
        data = json.loads(message)
      except json.JSONDecodeError:
        logger.debug("Received non-JSON WebSocket message: %s", message)
        continue
      if isinstance(data, dict) and data.get('type') == 'ping':
        await websocket.send(json.dumps({'type': 'pong', 'timestamp': data.get('timestamp', 0)}))
  except websockets.exceptions.ConnectionClosed as e:
    logger.info("WebSocket connection closed: %s", e)
  finally:
    manager.remove_connection(websocket)
    logger.info("WebSocket connection removed. Total connections: %d", len(manager.connections))


async def run_websocket_server(manager: WebSocketManager, host: str, port: int):
  websocket_port = port + 1  # Run websocket on port + 1
  logger.info("Starting WebSocket server on port %s", websocket_port)
  manager.set_event_loop(asyncio.get_running_loop())
  message_task = asyncio.create_task(manager.process_messages())

  async with websockets.serve(lambda ws: websocket_handler(ws, manager), host, websocket_port):
    await asyncio.gather(asyncio.Future(), message_task)


def run_flask_app(app: Flask, host: str, port: int):
  from werkzeug.serving import make_server

  server = make_server(host, port, app, threaded=True)
  logger.info("Starting Flask server on http://%s:%s", host, port)
  server.serve_forever()


def main(argv=None):
  parser = argparse.ArgumentParser(description="Labeling session server")
  parser.add_argument("--host", default="127.0.0.1", help="Host to bind to")
  parser.add_argument("--port", type=int, default=8686, help="Port to bind to")
  parser.add_argument("--debug", action="store_true", help="Enable debug mode")
  parser.add_argument("--db", default=None, help="SQLite database path (overrides SAT_DB_PATH)")
  parser.add_argument("--no-websocket", action="store_true", help="Do not start the WebSocket event feed")
  args = parser.parse_args(argv)

  if args.db:
    os.environ["SAT_DB_PATH"] = args.db
  setup_logging(app_debug=bool(args.debug))

  manager = None if (args.debug or args.no_websocket) else WebSocketManager()
  app = create_app(Storage(), manager)
  logger.info("Starting session server at http://%s:%s", args.host, args.port)

  if manager is None:
    app.run(host=args.host, port=args.port, debug=args.debug)
    return

  async def serve():
    loop = asyncio.get_running_loop()
    # Flask blocks its thread; the WebSocket server owns the event loop
    flask_future = loop.run_in_executor(None, run_flask_app, app, args.host, args.port)
    await asyncio.gather(run_websocket_server(manager, args.host, args.port), flask_future)

  asyncio.run(serve())


if __name__ == "__main__":
  main()
