from .command_executor import run_shell_command
from .file_manager import download, download_and_extract, extract, remove_tree, _safe_join, _safe_extract_tar
