from pydantic import BaseModel
from pathlib import Path
import os

class Settings(BaseModel):
    ignore_file_name: str = os.getenv("CODEXIGNORE_FILE", ".codexignore")
    log_level: str = os.getenv("CODEXIGNORE_LOG_LEVEL", "WARNING")
    manifest_workers: int = int(os.getenv("CODEXIGNORE_WORKERS", 4))

    def ignore_file_for(self, root: str | Path) -> Path: return Path(root) / self.ignore_file_name

settings = Settings()
