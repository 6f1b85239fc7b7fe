import contextlib
import os
import shutil
import tempfile
from urllib.parse import quote, urlsplit

from .cli_logger import logger


@contextlib.contextmanager
def git_credentials(credentials):
    """Expose GO_GIT_CRED__* tokens to git through a temporary credential store.

    Yields extra environment variables for build commands. The temporary
    directory holding the tokens is removed on exit, including when the build
    fails or is interrupted.
    """
    if not credentials:
        yield {}
        return

    temp_dir = tempfile.mkdtemp(prefix="gobuildpack-git-")
    try:
        store_path = os.path.join(temp_dir, "credentials")
        config_path = os.path.join(temp_dir, "gitconfig")
        with open(store_path, "w") as f:
            for url, token in sorted(credentials.items()):
                parts = urlsplit(url)
                f.write(f"{parts.scheme}://heroku:{quote(token, safe='')}@{parts.netloc}\n")
        os.chmod(store_path, 0o600)
        with open(config_path, "w") as f:
            f.write("[credential]\n")
            f.write(f"\thelper = store --file={store_path}\n")
        logger.step_info(f"Configured git credentials for {', '.join(sorted(credentials))}")
        yield {"GIT_CONFIG_GLOBAL": config_path, "GIT_TERMINAL_PROMPT": "0"}
    finally:
        shutil.rmtree(temp_dir, ignore_errors=True)
        logger.step_info("Removed temporary git credentials")
