#!/usr/bin/env python3
"""Run the MediaGate API under uvicorn."""
from __future__ import annotations

import sys

from uvicorn import run

if __name__ == "__main__":
    port = int(sys.argv[1]) if len(sys.argv) > 1 else 8000
    run("mediagate.main:app", host="0.0.0.0", port=port, log_level="info")
