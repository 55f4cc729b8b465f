#!/usr/bin/env python3
"""
web_remote.py  –  read-only web status for a sampling run

Endpoints
---------
/               → HTML page with the queue, diagnostics, and link to /log
/progress       → JSON array of queue rows {ref_idx, name, progress, failed}
/diag, /data    → JSON object of diagnostic metrics
/log            → contents of the runtime log (if present)
"""

from __future__ import annotations
import http.server
import socketserver
import threading
import urllib.parse
import json
import logging
import time
import os
import traceback
import platform
from typing import Any

import psutil

import config
from progress_board import ProgressBoard

log = logging.getLogger(__name__)

# ── diagnostics refresh cadence ───────────────────────────────────────────
_last_diag_time = 0.0
_diag_interval  = config.DIAG_REFRESH_INTERVAL

# ── global diagnostic store ───────────────────────────────────────────────
monitor_data: dict[str, Any] = {
    "cpu_percent":       0.0,
    "cpu_per_core":      [],
    "physical_cores":    psutil.cpu_count(logical=False),
    "mem_used":          "0 MB",
    "mem_total":         "0 MB",
    "disk_target":       "0%",
    "script_uptime":     "0d 00:00:00",
    "machine_uptime":    "0d 00:00:00",
    "load_avg":          "",
    "last_http_crash":   "",
    "python_version":    platform.python_version(),
}

_script_start = time.monotonic()
_boot_time    = psutil.boot_time()


# ── helpers ────────────────────────────────────────────────────────────────
def _fmt_duration(secs: float) -> str:
    d, rem = divmod(int(secs), 86400)
    h, rem = divmod(rem, 3600)
    m, s   = divmod(rem, 60)
    return f"{d}d {h:02}:{m:02}:{s:02}"


def _maybe_update_diagnostics(target: str) -> None:
    global _last_diag_time
    now = time.monotonic()
    if now - _last_diag_time >= _diag_interval:
        _last_diag_time = now
        _update_diagnostics(target)


def _update_diagnostics(target: str = "/") -> None:
    """Refresh CPU, memory, disk, uptime, load, etc. in `monitor_data`."""
    # CPU
    per_core = psutil.cpu_percent(percpu=True)
    avg_cpu  = sum(per_core) / len(per_core) if per_core else 0.0
    monitor_data["cpu_percent"]  = round(avg_cpu, 1)
    monitor_data["cpu_per_core"] = [round(p, 1) for p in per_core]
    # Memory
    vm = psutil.virtual_memory()
    monitor_data["mem_used"]  = f"{vm.used // 1024**2} MB"
    monitor_data["mem_total"] = f"{vm.total // 1024**2} MB"
    # Disk holding the PNGs
    du = psutil.disk_usage(target)
    monitor_data["disk_target"] = f"{du.percent}%"
    # Uptime
    now = time.monotonic()
    monitor_data["script_uptime"]  = _fmt_duration(now - _script_start)
    monitor_data["machine_uptime"] = _fmt_duration(time.time() - _boot_time)
    # Load average
    try:
        la = os.getloadavg()
        monitor_data["load_avg"] = ", ".join(f"{x:.2f}" for x in la)
    except OSError:
        monitor_data["load_avg"] = "N/A"


# ── reusable threaded HTTP server ──────────────────────────────────────────
class ReusableTCPServer(socketserver.ThreadingMixIn, http.server.HTTPServer):
    daemon_threads      = True
    allow_reuse_address = True
    board: ProgressBoard
    target: str


# ── request handler ────────────────────────────────────────────────────────
class StatusHandler(http.server.BaseHTTPRequestHandler):
    def log_message(self, *args):
        return  # silence default logging

    def do_GET(self):
        path = urllib.parse.urlparse(self.path).path

        if path == "/":
            return self._serve_html()
        if path == "/progress":
            return self._serve_json(self.server.board.snapshot())   # type: ignore
        if path in ("/diag", "/data"):
            _maybe_update_diagnostics(self.server.target)           # type: ignore
            return self._serve_json(monitor_data)
        if path == "/log":
            return self._serve_log()

        self.send_error(404, "Not found")

    # ── helpers for each route ───────────────────────────────────────────
    def _serve_html(self):
        self.send_response(200)
        self.send_header("Content-Type", "text/html")
        self.end_headers()
        self.wfile.write(HTML_PAGE.encode("utf-8"))

    def _serve_json(self, obj: Any):
        b = json.dumps(obj).encode("utf-8")
        self.send_response(200)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(b)))
        self.end_headers()
        self.wfile.write(b)

    def _serve_log(self):
        if not config.LOG_FILE:
            return self.send_error(404, "Log file not configured")
        try:
            with open(config.LOG_FILE, "rb") as fh:
                data = fh.read()
        except OSError:
            return self.send_error(404, "Log file not found")
        self.send_response(200)
        self.send_header("Content-Type", "text/plain; charset=utf-8")
        self.send_header("Content-Length", str(len(data)))
        self.end_headers()
        self.wfile.write(data)


# ── simple HTML UI ─────────────────────────────────────────────────────────
HTML_PAGE = """
<!doctype html><html><head><meta charset="utf-8">
<title>Video Sampler</title>
<style>
 body{background:#000;color:#0f0;font-family:monospace;padding:1em;}
 a.button{display:inline-block;margin:4px;padding:6px 12px;border:1px solid #0f0;
          text-decoration:none;color:#0f0;}
 pre{margin:0.5em 0;font-family:monospace;}
 .failed{color:#f33;}
</style></head><body>
<h2>Video Sampler</h2>
<a class="button" href="/log">View log</a>

<div><h3>Queue</h3><pre id="queue"></pre></div>
<div><h3>Diagnostics</h3><pre id="diag"></pre></div>

<script>
 function bar(p){
   let n = Math.round(p * 30);
   return '[' + '#'.repeat(n) + '.'.repeat(30 - n) + ']';
 }
 async function refreshUI(){
   try {
     let q  = await fetch('/progress'); let rows = await q.json();
     document.getElementById('queue').textContent = rows.map(r =>
       (r.failed ? 'FAILED ' + ' '.repeat(25) : bar(r.progress)) +
       ' ' + (r.progress * 100).toFixed(0).padStart(3) + '%  ' + r.name
     ).join('\\n');
     let d  = await fetch('/diag');    let dg = await d.json();
     let txt = '';
     for (let [k,v] of Object.entries(dg)){
       txt += k.padEnd(20,' ') + v + '\\n';
     }
     document.getElementById('diag').textContent = txt;
   } catch(e){
     console.error(e);
   }
 }
 setInterval(refreshUI, 500);
 refreshUI();
</script>
</body></html>
"""


# ── server bootstrap with auto-restart ────────────────────────────────────
def start(board: ProgressBoard, port: int, target: str = ".") -> threading.Thread:
    def _serve_loop():
        while True:
            try:
                with ReusableTCPServer(("", port), StatusHandler) as httpd:
                    httpd.board = board
                    httpd.target = target
                    httpd.serve_forever()
            except OSError:
                monitor_data["last_http_crash"] = traceback.format_exc()
                log.exception("web status server crashed; restarting")
                time.sleep(1)

    t = threading.Thread(target=_serve_loop, name="web-status", daemon=True)
    t.start()
    log.info("web status listening on port %d", port)
    return t
