from html import escape

from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse

from ..control import STREAM_URL, ControlFacade
from ..deps import get_control

router = APIRouter(tags=["ui"])


# ---------------- UI: live player + controls ----------------
@router.get("/player", response_class=HTMLResponse)
def player(control: ControlFacade = Depends(get_control)):
    status = control.status()
    pl = status["playlist"]
    rows = []
    for i, t in enumerate(pl["items"]):
        mark = "▶" if i == pl["current_index"] else ""
        dur = f"{t['duration']:.0f}s" if t.get("duration") else "—"
        name = escape(t["name"])
        rows.append(f"""
          <tr data-id="{t['id']}">
            <td style="text-align:center">{mark}</td>
            <td>{name}</td>
            <td>{dur}</td>
            <td>
              <button class="btn" onclick="setCurrent({i})">Make current</button>
              <button class="btn" onclick="removeItem('{t['id']}')">Remove</button>
            </td>
          </tr>
        """)
    rows_html = "\n".join(rows) or "<tr><td colspan='4'>Playlist is empty. Upload a video below.</td></tr>"

    html = f"""<!doctype html>
<html>
<head>
<meta charset="utf-8"/>
<meta name="viewport" content="width=device-width, initial-scale=1"/>
<title>Insta-Stream</title>
<script src="https://cdn.jsdelivr.net/npm/hls.js@1"></script>
<style>
  body{{font-family:system-ui,Segoe UI,Roboto,Arial;margin:0}}
  .playerbar{{position:sticky;top:0;z-index:10;background:#fff;border-bottom:1px solid #eee;padding:12px}}
  .row{{display:flex;gap:12px;align-items:center;flex-wrap:wrap}}
  .pill{{border:1px solid #ddd;border-radius:999px;padding:4px 10px}}
  .btn{{padding:6px 10px;border-radius:6px;border:1px solid #ddd;background:#fafafa;cursor:pointer}}
  .danger{{background:#b91c1c;color:#fff;border:none}}
  .dot{{width:10px;height:10px;border-radius:50%;display:inline-block;vertical-align:middle;margin-right:6px;background:#bbb}}
  .dot.streaming{{background:#16a34a}}
  .dot.paused{{background:#f59e0b}}
  table{{width:100%;border-collapse:collapse;margin-top:12px}}
  th,td{{border-bottom:1px solid #eee;padding:8px;text-align:left}}
  main{{padding:16px 24px 40px}}
</style>
</head>
<body>

<div class="playerbar">
  <div class="row">
    <span id="stDot" class="dot {status['phase']}"></span>
    <strong>Insta-Stream</strong>
    <span class="pill">Phase: <b id="phase">{status['phase']}</b></span>
    <button class="btn" onclick="ctl('stream/start')">▶️ Start</button>
    <button class="btn" onclick="ctl('stream/pause')">⏸️ Pause</button>
    <button class="btn" onclick="ctl('stream/resume')">⏯️ Resume</button>
    <button class="btn" onclick="ctl('playlist/next')">⏭️ Next</button>
    <button class="btn danger" onclick="ctl('stream/stop')">⏹️ Stop</button>
  </div>
  <div class="row" style="margin-top:8px">
    <video id="video" controls muted autoplay style="width:100%;max-height:60vh;background:#000"></video>
  </div>
  <div style="margin-top:6px"><b>Message:</b> <span id="msg">—</span></div>
</div>

<main>
  <form id="up" class="row">
    <input type="file" name="video" accept="video/*" required>
    <button class="btn" type="submit">Upload</button>
    <button class="btn danger" type="button" onclick="confirmClear()">Clear playlist</button>
  </form>
  <table>
    <thead><tr><th></th><th>Name</th><th>Duration</th><th>Action</th></tr></thead>
    <tbody>{rows_html}</tbody>
  </table>
</main>

<script>
// NOTE: This block is inside a Python f-string. JS braces are doubled {{ }}.
const STREAM = "{STREAM_URL}";

function say(m) {{ document.getElementById('msg').innerText = m; }}

async function call(method, path, body) {{
  const opts = {{ method }};
  if (body) {{ opts.headers = {{'Content-Type': 'application/json'}}; opts.body = JSON.stringify(body); }}
  const r = await fetch('/api/' + path, opts);
  const j = await r.json().catch(() => ({{ message: r.statusText }}));
  say(j.message || r.status);
  return j;
}}

async function ctl(path) {{
  const j = await call('POST', path);
  if (j.success && (path === 'stream/start' || path === 'playlist/next')) attach();
  setTimeout(() => location.reload(), 800);
}}
function setCurrent(i) {{ call('POST', 'playlist/current/' + i).then(() => location.reload()); }}
function removeItem(id) {{ call('DELETE', 'playlist/' + id).then(() => location.reload()); }}
function confirmClear() {{
  if (confirm('Remove every item from the playlist?')) call('DELETE', 'playlist').then(() => location.reload());
}}

document.getElementById('up').addEventListener('submit', async (ev) => {{
  ev.preventDefault();
  say('Uploading…');
  const r = await fetch('/api/upload', {{ method: 'POST', body: new FormData(ev.target) }});
  const j = await r.json().catch(() => ({{}}));
  say(j.message || r.status);
  if (j.success) location.reload();
}});

function attach() {{
  const video = document.getElementById('video');
  if (window.Hls && Hls.isSupported()) {{
    const hls = new Hls({{ liveSyncDurationCount: 3 }});
    hls.loadSource(STREAM);
    hls.attachMedia(video);
  }} else if (video.canPlayType('application/vnd.apple.mpegurl')) {{
    video.src = STREAM;
  }}
}}

if ("{status['phase']}" === "streaming" || "{status['phase']}" === "paused") attach();
</script>
</body>
</html>"""
    return HTMLResponse(html, status_code=200)
