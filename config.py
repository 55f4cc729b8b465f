# config.py
"""
Configuration settings for the video sampler.
Command-line flags override anything set here.
"""

# ── Sampling defaults ──────────────────────────────────────────────────────

# Output pixel height; width follows the source aspect ratio
DEFAULT_HEIGHT  = 360

# Stills extracted per video
DEFAULT_SAMPLES = 10

# Where PNGs go when --target is not given (must already exist)
DEFAULT_TARGET  = "."

# Reject-and-redraw instead of plain modulo when picking timestamps
UNBIASED_SAMPLING = False

# ── Workers ────────────────────────────────────────────────────────────────

# None means one worker per physical core
WORKERS = None

# Seconds to wait on any single bus message / preroll pull.
# None blocks until GStreamer answers.
BUS_TIMEOUT_SEC = None

# ── Batch building ─────────────────────────────────────────────────────────

VIDEO_EXTENSIONS = (".mp4", ".mkv", ".avi", ".mov", ".webm", ".flv", ".m4v", ".ts")

# Skip files PyAV cannot find a video stream in before queueing them
PROBE_SOURCES = True

# ── Logging / web status ───────────────────────────────────────────────────

LOG_LEVEL = "INFO"

# Also written to this file (served at /log) when not None
LOG_FILE  = "runtime.log"

# None disables the web status page
WEB_PORT  = None

# Seconds between psutil refreshes on /diag
DIAG_REFRESH_INTERVAL = 1.0

# Terminal progress redraw cadence
PROGRESS_POLL_SEC = 0.1
