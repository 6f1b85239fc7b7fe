import subprocess
from ..cli_logger import logger


def run_shell_command(command, env=None, cwd=None):
    """
    Executes a command, streaming its merged stdout and stderr line by line.

    Args:
        command (list): The command to execute as a list of strings.
        env (dict, optional): A dictionary of environment variables.
        cwd (str, optional): The working directory for the command.

    Returns:
        A tuple (line generator, process); the process returncode is set once
        the generator is exhausted.
    """
    try:
        process = subprocess.Popen(
            command,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            bufsize=1,
            universal_newlines=True,
            env=env,
            cwd=cwd
        )
    except FileNotFoundError as e:
        logger.error(f"Command not found: {e.filename}")
        return iter([f"{e.filename}: command not found\n"]), _FailedProcess(127)
    except OSError as e:
        logger.error(f"Could not start {command[0]}: {e}")
        return iter([f"{e}\n"]), _FailedProcess(126)

    def _generator():
        for line in process.stdout:
            yield line
        process.wait()
    return _generator(), process


class _FailedProcess:
    """Stand-in process for commands that never started."""

    def __init__(self, returncode):
        self.returncode = returncode
