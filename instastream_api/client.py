# instastream_api/client.py
import argparse
import json
import mimetypes
import os
import sys
from urllib.parse import urljoin

import requests
from dotenv import load_dotenv

load_dotenv()

SERVER_BASE = os.getenv("SERVER_BASE", "http://localhost:3000/")
VALID_EXTENSIONS = tuple(
    ext.strip().lower()
    for ext in os.getenv("VALID_VIDEO_EXTENSIONS", ".mp4,.mkv,.mov,.avi,.webm,.mpeg,.mpg").split(",")
    if ext.strip()
)
# mimetypes does not know every container the server accepts
FALLBACK_MIMES = {".mkv": "video/x-matroska", ".webm": "video/webm", ".avi": "video/x-msvideo"}


class Client:
    def __init__(self, base: str = SERVER_BASE, timeout: float = 10):
        self.base = base.rstrip("/") + "/"
        self.timeout = timeout

    def _call(self, method: str, path: str, **kw) -> dict:
        kw.setdefault("timeout", self.timeout)
        r = requests.request(method, urljoin(self.base, path), **kw)
        try:
            body = r.json()
        except ValueError:
            body = {"success": False, "message": r.text[:200]}
        body.setdefault("status_code", r.status_code)
        return body

    def status(self):
        return self._call("GET", "api/stream/status")

    def control(self, verb: str):
        return self._call("POST", f"api/stream/{verb}")

    def next(self):
        return self._call("POST", "api/playlist/next")

    def remove(self, item_id: str):
        return self._call("DELETE", f"api/playlist/{item_id}")

    def clear(self):
        return self._call("DELETE", "api/playlist")

    def set_current(self, index: int):
        return self._call("POST", f"api/playlist/current/{index}")

    def reorder(self, ids):
        return self._call("POST", "api/playlist/reorder", json={"order": list(ids)})

    def upload(self, path: str):
        ext = os.path.splitext(path)[1].lower()
        mime = mimetypes.guess_type(path)[0] or FALLBACK_MIMES.get(ext, "application/octet-stream")
        with open(path, "rb") as fh:
            files = {"video": (os.path.basename(path), fh, mime)}
            # uploads can be big; no read timeout
            return self._call("POST", "api/upload", files=files, timeout=(5, None))


def scan_folder(folder_path):
    found = []
    for root, _, files in os.walk(os.path.abspath(folder_path)):
        for file in sorted(files):
            if file.lower().endswith(VALID_EXTENSIONS):
                found.append(os.path.join(root, file))
    return found


def _print(body):
    mark = "✅" if body.get("success") else "❌"
    print(f"{mark} {body.get('message', '')}")
    if body.get("data") is not None:
        print(json.dumps(body["data"], indent=2))


def main(argv=None):
    parser = argparse.ArgumentParser(description="Control an Insta-Stream server.")
    parser.add_argument("--server", default=SERVER_BASE, help="Server base URL")
    sub = parser.add_subparsers(dest="cmd", required=True)
    up = sub.add_parser("upload", help="Upload video files")
    up.add_argument("files", nargs="+")
    scan = sub.add_parser("scan", help="Upload every video under a folder")
    scan.add_argument("folder")
    for verb in ("status", "start", "stop", "pause", "resume", "next", "clear"):
        sub.add_parser(verb)
    rm = sub.add_parser("remove", help="Remove an item by id")
    rm.add_argument("item_id")
    cur = sub.add_parser("current", help="Set the current item by index")
    cur.add_argument("index", type=int)
    ro = sub.add_parser("reorder", help="Reorder the playlist")
    ro.add_argument("ids", nargs="+")
    args = parser.parse_args(argv)

    client = Client(args.server)
    try:
        if args.cmd in ("upload", "scan"):
            paths = args.files if args.cmd == "upload" else scan_folder(args.folder)
            if args.cmd == "scan":
                print(f"📁 Found {len(paths)} videos in {args.folder}")
            ok = True
            for p in paths:
                body = client.upload(p)
                ok = ok and bool(body.get("success"))
                print(f"{'✅' if body.get('success') else '❌'} {os.path.basename(p)}: {body.get('message')}")
            return 0 if ok else 1
        if args.cmd == "status":
            body = client.status()
        elif args.cmd in ("start", "stop", "pause", "resume"):
            body = client.control(args.cmd)
        elif args.cmd == "next":
            body = client.next()
        elif args.cmd == "clear":
            body = client.clear()
        elif args.cmd == "remove":
            body = client.remove(args.item_id)
        elif args.cmd == "current":
            body = client.set_current(args.index)
        else:
            body = client.reorder(args.ids)
    except requests.RequestException as e:
        print(f"❌ Error talking to server: {e}", file=sys.stderr)
        return 2
    _print(body)
    return 0 if body.get("success") else 1


if __name__ == "__main__":
    sys.exit(main())
