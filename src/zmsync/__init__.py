"""zmsync - Incremental upload of motion-detection event folders to Google Drive."""

__version__ = "0.1.0"
