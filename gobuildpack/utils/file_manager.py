import os
import requests
import tarfile
import shutil
import contextlib
import stat
from ..cli_logger import logger

# -------------------- Helpers: safe paths & extraction --------------------

def _safe_join(base, *paths):
    """Safely join paths, preventing path traversal attacks."""
    base = os.path.abspath(base)
    final = os.path.abspath(os.path.join(base, *paths))
    if not final.startswith(base + os.sep) and final != base:
        raise IOError(f"Unsafe path detected: {final}")
    return final


def remove_tree(path):
    """Remove a directory tree, including read-only entries such as Go's module cache."""
    if not os.path.islink(path):
        os.chmod(path, os.stat(path).st_mode | stat.S_IRWXU)
    for root, dirs, _ in os.walk(path):
        for name in dirs:
            dir_path = os.path.join(root, name)
            if not os.path.islink(dir_path):
                os.chmod(dir_path, os.stat(dir_path).st_mode | stat.S_IRWXU)
    shutil.rmtree(path)


def _strip_components(name, count):
    parts = [p for p in name.split("/") if p not in ("", ".")]
    return "/".join(parts[count:])


def _safe_extract_tar(tar_ref: tarfile.TarFile, dest_dir: str, strip_components=0):
    """Safely extract a tar file, preventing path traversal attacks."""
    for member in tar_ref.getmembers():
        name = _strip_components(member.name, strip_components)
        if not name:
            continue
        member_path = _safe_join(dest_dir, name)
        if member.isdir():
            os.makedirs(member_path, exist_ok=True)
            continue
        os.makedirs(os.path.dirname(member_path), exist_ok=True)
        if member.issym():
            link_target = os.path.normpath(os.path.join(os.path.dirname(member_path), member.linkname))
            _safe_join(dest_dir, os.path.relpath(link_target, dest_dir))
            if os.path.lexists(member_path):
                os.remove(member_path)
            os.symlink(member.linkname, member_path)
            continue
        src = tar_ref.extractfile(member)
        if src is None:
            # special files are skipped
            continue
        with src as src_file:
            with open(member_path, "wb") as out:
                shutil.copyfileobj(src_file, out)
        # Preserve file permissions
        if member.mode:
            os.chmod(member_path, member.mode)


def extract(filepath, dest_dir, strip_components=0):
    """Extracts a tar archive to a destination directory and removes the archive."""
    os.makedirs(dest_dir, exist_ok=True)
    if not tarfile.is_tarfile(filepath):
        raise IOError(f"Unsupported archive type for {os.path.basename(filepath)}")

    with tarfile.open(filepath, "r:*") as tar:
        _safe_extract_tar(tar, dest_dir, strip_components=strip_components)

    with contextlib.suppress(OSError):
        os.remove(filepath)
    return dest_dir


# -------------------- Download --------------------

def download(url, dest_path, timeout=60):
    """Download url to dest_path through a .tmp file renamed into place."""
    os.makedirs(os.path.dirname(dest_path) or ".", exist_ok=True)
    temp_filepath = dest_path + ".tmp"
    try:
        with requests.get(url, stream=True, timeout=timeout) as r:
            r.raise_for_status()
            total_size = int(r.headers.get('content-length', 0))

            with open(temp_filepath, 'wb') as f:
                chunks = logger.progress(
                    r.iter_content(chunk_size=1024 * 256),  # 256KB chunks
                    description=f"Downloading {os.path.basename(dest_path)}",
                    total=total_size,
                )
                for chunk in chunks:
                    if chunk:  # keep-alive chunks may be empty
                        f.write(chunk)

        # Atomic rename
        os.replace(temp_filepath, dest_path)
        return dest_path
    except BaseException:
        with contextlib.suppress(OSError):
            if os.path.exists(temp_filepath):
                os.remove(temp_filepath)
        raise


def download_and_extract(url, dest_dir, filename=None, strip_components=0, timeout=60):
    """Download a tarball and extract it into dest_dir.

    Raises requests.RequestException on network errors and IOError on bad
    archives; callers decide how to report them.
    """
    os.makedirs(dest_dir, exist_ok=True)
    if filename is None:
        filename = url.split('/')[-1]
    filepath = os.path.join(dest_dir, filename)

    download(url, filepath, timeout=timeout)
    logger.step_info(f"Archive:  {filename}")
    return extract(filepath, dest_dir, strip_components=strip_components)
