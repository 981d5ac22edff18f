"""
Launcher shim source generation.

The launcher is the lambda's entry module: it loads the user's server
entrypoint, hands it to the bridge, and exports ``launcher`` as the handler.
"""

from __future__ import annotations

import json

LAUNCHER_TEMPLATE = """\
const { Bridge } = require(__BRIDGE_PATH__);
const { Server } = require('http');

let isServerListening = false;
let bridge = new Bridge();
const saveListen = Server.prototype.listen;
Server.prototype.listen = function listen() {
  isServerListening = true;
  console.log('Legacy server listening...');
  bridge.setServer(this);
  Server.prototype.listen = saveListen;
  return bridge.listen();
};

if (!process.env.NODE_ENV) {
  process.env.NODE_ENV = 'production';
}

try {
  require(__SOURCEMAP_SUPPORT_PATH__).install();
} catch (_) {
  // source map support is optional
}

try {
  let listener = require(__ENTRYPOINT_PATH__);
  if (listener.default) listener = listener.default;

  if (typeof listener.listen === 'function') {
    Server.prototype.listen = saveListen;
    const server = listener;
    bridge = new Bridge(server);
  } else if (typeof listener === 'function') {
    Server.prototype.listen = saveListen;
__HELPERS_BLOCK__
    bridge = new Bridge(server);
  } else if (typeof listener === 'object' && Object.keys(listener).length === 0) {
    setTimeout(() => {
      if (!isServerListening) {
        console.error('No exports found in module %j.', __ENTRYPOINT_PATH__);
        console.error('Did you forget to export a function or a server?');
        process.exit(1);
      }
    }, 5000);
  } else {
    console.error('Invalid export found in module %j.', __ENTRYPOINT_PATH__);
    console.error('The default export must be a function or server.');
  }
} catch (err) {
  if (err.code === 'MODULE_NOT_FOUND') {
    console.error(err.message);
    console.error('Did you forget to add it to "dependencies" in `package.json`?');
    process.exit(1);
  } else {
    console.error(err);
    process.exit(1);
  }
}

bridge.listen();

exports.launcher = bridge.launcher;
"""

HELPERS_BLOCK = """\
    let server;
    if (process.env.NODE_ENV === 'production' || process.env.NOW_NODE_HELPERS !== '0') {
      const { createServerWithHelpers } = require(__HELPERS_PATH__);
      server = createServerWithHelpers(listener, bridge);
    } else {
      server = require('http').createServer(listener);
    }"""

PLAIN_BLOCK = """\
    const server = require('http').createServer(listener);"""


def make_launcher(
    entrypoint_path: str,
    bridge_path: str,
    helpers_path: str,
    sourcemap_support_path: str,
    should_add_helpers: bool = True,
) -> str:
    """Return the launcher module source."""
    block = HELPERS_BLOCK if should_add_helpers else PLAIN_BLOCK
    source = LAUNCHER_TEMPLATE.replace("__HELPERS_BLOCK__", block)
    replacements = {
        "__BRIDGE_PATH__": bridge_path,
        "__HELPERS_PATH__": helpers_path,
        "__SOURCEMAP_SUPPORT_PATH__": sourcemap_support_path,
        "__ENTRYPOINT_PATH__": entrypoint_path,
    }
    for placeholder, value in replacements.items():
        source = source.replace(placeholder, json.dumps(value))
    return source
