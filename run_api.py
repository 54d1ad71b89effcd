"""Run the certificate service locally from a source checkout.

Keys and the data directory come from the usual settings, e.g.::

  zt-cli keygen --out keys
  CERT_PRIVATE_KEY_PATH=keys/private.pem CERT_PUBLIC_KEY_PATH=keys/public.pem \
      ZT_DATA_DIR=./data python run_api.py --port 8080

Without a private key the service still starts; issuing answers 503.
"""
from __future__ import annotations

import argparse
import pathlib
import sys

ROOT = pathlib.Path(__file__).parent
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from zerotrace.api.main import app  # noqa: E402

if __name__ == "__main__":
    import uvicorn

    p = argparse.ArgumentParser(description="ZeroTrace certificate service")
    p.add_argument("--host", default="127.0.0.1")
    p.add_argument("--port", type=int, default=8000)
    args = p.parse_args()
    uvicorn.run(app, host=args.host, port=args.port, reload=False)
