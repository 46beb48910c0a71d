import os
import sys
import tempfile

# Keep export artifacts out of the repo when main is imported
os.environ.setdefault("EXPORT_DIR", tempfile.mkdtemp(prefix="slide_exports_"))

# Ensure repo root on sys.path for top-level module imports
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
