import os
import tempfile

# keep log files out of the working tree
os.environ.setdefault("LOGS_DIR", tempfile.mkdtemp(prefix="finassist-logs-"))
os.environ.setdefault("DATA_DIR", tempfile.mkdtemp(prefix="finassist-data-"))
