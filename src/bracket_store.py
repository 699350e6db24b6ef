"""
YAML-backed bracket storage, one directory per tournament.
"""
import os
import re
import shutil
import logging
import tempfile
from contextlib import contextmanager

import yaml
from filelock import FileLock

from engine.errors import ValidationError

logger = logging.getLogger(__name__)

BASE_DIR = os.path.dirname(os.path.dirname(__file__))
DEFAULT_DATA_DIR = os.environ.get('TOURNAMENT_DATA_DIR', os.path.join(BASE_DIR, 'data'))
BRACKET_FILE = 'bracket.yaml'
LOCK_SUFFIX = '.lock'


class BracketStore:
    """Stores one bracket document per tournament under data_dir/tournaments."""

    def __init__(self, data_dir=None, lock_timeout=10):
        self.data_dir = data_dir or DEFAULT_DATA_DIR
        self.lock_timeout = lock_timeout

    def tournament_dir(self, tournament_id: str) -> str:
        if not isinstance(tournament_id, str) or not re.match(r'^[a-z0-9][a-z0-9_-]*$', tournament_id):
            raise ValidationError(f'Invalid tournament id: {tournament_id!r}')
        return os.path.join(self.data_dir, 'tournaments', tournament_id)

    def _bracket_path(self, tournament_id: str) -> str:
        return os.path.join(self.tournament_dir(tournament_id), BRACKET_FILE)

    def lock_path(self, tournament_id: str) -> str:
        """Lock files sit beside the tournament directories, not inside them."""
        self.tournament_dir(tournament_id)
        return os.path.join(self.data_dir, 'tournaments', f'{tournament_id}{LOCK_SUFFIX}')

    @contextmanager
    def locked(self, tournament_id: str):
        """Hold the tournament's file lock for a load-mutate-save cycle."""
        path = self.lock_path(tournament_id)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        lock = FileLock(path, timeout=self.lock_timeout)
        with lock:
            yield

    def exists(self, tournament_id: str) -> bool:
        return os.path.exists(self._bracket_path(tournament_id))

    def load(self, tournament_id: str):
        """Load a stored bracket, or None if there is none."""
        path = self._bracket_path(tournament_id)
        if not os.path.exists(path):
            return None
        with open(path, 'r', encoding='utf-8') as f:
            return yaml.safe_load(f)

    def save(self, tournament_id: str, bracket: dict):
        """Write the bracket to a temporary file, then move it into place."""
        directory = self.tournament_dir(tournament_id)
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=directory, suffix='.tmp')
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                yaml.safe_dump(bracket, f, default_flow_style=False, sort_keys=False)
            shutil.move(tmp_path, self._bracket_path(tournament_id))
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
        logger.debug("Saved bracket for tournament %s", tournament_id)

    def delete(self, tournament_id: str) -> bool:
        path = self._bracket_path(tournament_id)
        if not os.path.exists(path):
            return False
        os.remove(path)
        logger.info("Deleted bracket for tournament %s", tournament_id)
        return True
