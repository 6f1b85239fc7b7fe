import os
import shutil
from urllib.parse import quote, unquote

from .cli_logger import logger
from .errors import CacheIOError
from .signature import CacheState
from .utils import remove_tree

SIGNATURE_FILE = "signature"
PAYLOAD_DIR = "payload"
RESULT_FILE = "build-result.json"


def _key(relative_dir):
    return quote(relative_dir.replace(os.sep, "/"), safe="")


class CacheStore:
    """Directory cache rooted at the buildpack CACHE_DIR.

    Layout: ``signature`` plus ``payload/<quoted relative path>/`` for each
    cached directory. One build at a time per cache root; there is no locking.
    """

    def __init__(self, cache_dir, build_dir):
        self.cache_dir = os.path.abspath(cache_dir)
        self.build_dir = os.path.abspath(build_dir)

    @property
    def payload_dir(self):
        return os.path.join(self.cache_dir, PAYLOAD_DIR)

    @property
    def signature_path(self):
        return os.path.join(self.cache_dir, SIGNATURE_FILE)

    def read_signature(self):
        try:
            with open(self.signature_path, "r") as f:
                return f.read().strip() or None
        except FileNotFoundError:
            return None
        except OSError as e:
            raise CacheIOError(f"Could not read cache signature: {e}") from e

    def write_signature(self, signature):
        temp_path = self.signature_path + ".tmp"
        try:
            os.makedirs(self.cache_dir, exist_ok=True)
            with open(temp_path, "w") as f:
                f.write(signature + "\n")
            os.replace(temp_path, self.signature_path)
        except OSError as e:
            raise CacheIOError(f"Could not write cache signature: {e}") from e

    def clear(self):
        """Remove the signature first, then the payload."""
        try:
            if os.path.exists(self.signature_path):
                os.remove(self.signature_path)
            if os.path.exists(self.payload_dir):
                remove_tree(self.payload_dir)
        except OSError as e:
            raise CacheIOError(f"Could not clear cache at {self.cache_dir}: {e}") from e

    def cached_directories(self):
        if not os.path.isdir(self.payload_dir):
            return []
        return sorted(unquote(name) for name in os.listdir(self.payload_dir))

    def restore(self, state, directories):
        """Copy cached directories back into the build dir.

        Only a VALID cache is restored. NEW_SIGNATURE clears the stale cache
        and restores nothing. Returns the restored relative paths.
        """
        if state == CacheState.NEW_SIGNATURE:
            logger.step_info("Toolchain changed since the last build, discarding cache")
            self.clear()
            return []
        if state != CacheState.VALID:
            return []

        restored = []
        try:
            for relative_dir in directories:
                source = os.path.join(self.payload_dir, _key(relative_dir))
                if not os.path.isdir(source):
                    continue
                target = os.path.join(self.build_dir, relative_dir)
                os.makedirs(os.path.dirname(target), exist_ok=True)
                shutil.copytree(source, target, symlinks=True, dirs_exist_ok=True)
                logger.step_info(f"Restored {relative_dir}")
                restored.append(relative_dir)
        except (shutil.Error, OSError) as e:
            raise CacheIOError(f"Could not restore cache: {e}") from e
        return restored

    def save(self, directories, signature, state=None):
        """Replace the cache with the current directories, then write the signature.

        The signature is written last so an interrupted save leaves no
        signature pointing at a partial payload. Returns the saved paths.
        """
        if state == CacheState.DISABLED:
            return []

        self.clear()
        saved = []
        try:
            os.makedirs(self.payload_dir, exist_ok=True)
            for relative_dir in directories:
                source = os.path.join(self.build_dir, relative_dir)
                if not os.path.isdir(source):
                    continue
                target = os.path.join(self.payload_dir, _key(relative_dir))
                shutil.copytree(source, target, symlinks=True)
                saved.append(relative_dir)
        except (shutil.Error, OSError) as e:
            raise CacheIOError(f"Could not save cache: {e}") from e

        self.write_signature(signature)
        return saved

    def size(self):
        total = 0
        for root, _, files in os.walk(self.payload_dir):
            for name in files:
                path = os.path.join(root, name)
                if not os.path.islink(path):
                    total += os.path.getsize(path)
        return total
