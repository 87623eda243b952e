"""
Stand-in for mpv used by the end-to-end tests.

Serves the JSON IPC protocol on the --input-ipc-server socket with a small
property store. Test-only switches:

  --fake-exit=CODE      write to stderr and exit with CODE before listening
  --fake-exit-if-exists=PATH
                        exit with code 4 like --fake-exit when PATH exists
  --fake-no-ipc         stay alive but never open the socket
  --fake-delay=SECONDS  sleep before opening the socket

Every received command is recorded and can be read back through the
"fake-command-log" property. script-message supports a few verbs:
"emit-raw <line>", "event <name>", "noreply" and "stderr <text>".
"""

import argparse
import asyncio
import json
import os
import sys


class FakePlayer:

    def __init__(self):
        self.properties = {
            "volume": 100.0,
            "pause": False,
            "idle-active": True,
            "mpv-version": "mpv fake",
        }
        self.clients = {}
        self.command_log = []

    async def handle_client(self, reader, writer):
        observed = {}
        self.clients[writer] = observed
        try:
            while True:
                line = await reader.readline()
                if not line:
                    break
                line = line.strip()
                if not line:
                    continue
                try:
                    message = json.loads(line)
                except ValueError:
                    self.send(writer, {"error": "invalid parameter"})
                    continue
                await self.handle(message, writer, observed)
                await writer.drain()
        except ConnectionError:
            pass
        finally:
            self.clients.pop(writer, None)
            writer.close()

    def send(self, writer, obj):
        writer.write((json.dumps(obj) + "\n").encode("utf-8"))

    def reply(self, writer, request_id, data=None, error="success"):
        message = {"request_id": request_id, "error": error}
        if data is not None:
            message["data"] = data
        self.send(writer, message)

    def notify(self, name):
        for writer, observed in list(self.clients.items()):
            for observe_id, observed_name in observed.items():
                if observed_name == name:
                    self.send(writer, {
                        "event": "property-change",
                        "id": observe_id,
                        "name": name,
                        "data": self.properties.get(name),
                    })

    async def handle(self, message, writer, observed):
        request_id = message.get("request_id", 0)
        command = message.get("command") or [None]
        name, args = command[0], command[1:]
        if name is not None:
            self.command_log.append(command)

        if name == "get_property":
            if args[0] == "fake-command-log":
                self.reply(writer, request_id, list(self.command_log))
            elif args[0] in self.properties:
                self.reply(writer, request_id, self.properties[args[0]])
            else:
                self.reply(writer, request_id, error="property not found")
        elif name == "set_property":
            self.properties[args[0]] = args[1]
            self.reply(writer, request_id)
            self.notify(args[0])
        elif name == "observe_property":
            observed[args[0]] = args[1]
            self.reply(writer, request_id)
            self.send(writer, {
                "event": "property-change",
                "id": args[0],
                "name": args[1],
                "data": self.properties.get(args[1]),
            })
        elif name == "unobserve_property":
            if observed.pop(args[0], None) is None:
                self.reply(writer, request_id, error="invalid parameter")
            else:
                self.reply(writer, request_id)
        elif name == "quit":
            self.reply(writer, request_id)
            await writer.drain()
            os._exit(args[0] if args else 0)
        elif name == "script-message":
            verb = args[0] if args else None
            if verb == "noreply":
                return
            if verb == "emit-raw":
                writer.write((args[1] + "\n").encode("utf-8"))
            elif verb == "event":
                self.send(writer, {"event": args[1]})
            elif verb == "stderr":
                sys.stderr.write(args[1] + "\n")
                sys.stderr.flush()
            self.reply(writer, request_id)
        elif name == "client_name":
            self.reply(writer, request_id, "fake")
        else:
            self.reply(writer, request_id)


async def main(argv):
    parser = argparse.ArgumentParser()
    parser.add_argument("--input-ipc-server")
    parser.add_argument("--fake-exit", type=int)
    parser.add_argument("--fake-exit-if-exists")
    parser.add_argument("--fake-no-ipc", action="store_true")
    parser.add_argument("--fake-delay", type=float, default=0.0)
    options, _ = parser.parse_known_args(argv)

    if options.fake_exit_if_exists and os.path.exists(options.fake_exit_if_exists):
        options.fake_exit = 4

    if options.fake_exit is not None:
        sys.stderr.write("fake: refusing to start\n")
        sys.stderr.flush()
        return options.fake_exit

    if options.fake_no_ipc or not options.input_ipc_server:
        await asyncio.sleep(3600)
        return 0

    if options.fake_delay:
        await asyncio.sleep(options.fake_delay)

    player = FakePlayer()
    server = await asyncio.start_unix_server(player.handle_client, path=options.input_ipc_server)
    try:
        async with server:
            await server.serve_forever()
    finally:
        try:
            os.unlink(options.input_ipc_server)
        except OSError:
            pass
    return 0


if __name__ == "__main__":
    try:
        sys.exit(asyncio.run(main(sys.argv[1:])))
    except KeyboardInterrupt:
        sys.exit(0)
