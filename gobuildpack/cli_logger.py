import collections
import datetime
import sys
import time
import traceback
import os
import shutil
from colorama import Fore, Style, init

# Initialize Colorama
init(autoreset=True)

LOG_DIR = os.environ.get(
    "BUILDPACK_LOG_DIR",
    os.path.join(os.path.expanduser("~"), ".gobuildpack", "logs"),
)
os.makedirs(LOG_DIR, exist_ok=True)

# Number of recent output lines kept for failure diagnostics
TAIL_LINES = 200


class Logger:
    def __init__(self):
        self.log_file = os.path.join(
            LOG_DIR,
            f"gobuildpack_{datetime.datetime.now().strftime('%Y%m%d_%H%M%S')}.log"
        )
        self._tail = collections.deque(maxlen=TAIL_LINES)

    def _get_timestamp(self):
        return datetime.datetime.now().strftime("%H:%M:%S")

    def _write(self, log_message):
        try:
            with open(self.log_file, "a") as f:
                f.write(log_message)
        except OSError:
            # console copy already printed
            pass

    def _log(self, level, message, color, stream=sys.stdout, prefix="", show_timestamp=True):
        self._tail.append(str(message))
        if show_timestamp:
            timestamp = self._get_timestamp()
            log_message = f"[{timestamp}] [{level}] {prefix}{message}\n"
            print(f"{color}{Style.BRIGHT}[{timestamp}]{Style.RESET_ALL} {prefix}{message}{Style.RESET_ALL}", file=stream)
        else:
            log_message = f"[{level}] {prefix}{message}\n"
            print(f"{color}{prefix}{message}{Style.RESET_ALL}", file=stream)

        self._write(log_message)

    def topic(self, message):
        """Print a build section header, buildpack style."""
        self._log("STEP", message, Fore.MAGENTA, prefix="-----> ", show_timestamp=False)

    def info(self, message):
        self._log("INFO", message, Fore.CYAN)

    def step_info(self, message, indent=7):
        prefix = " " * indent
        self._log("", message, Fore.CYAN, prefix=prefix, show_timestamp=False)

    def success(self, message):
        self._log("SUCCESS", message, Fore.GREEN, prefix=f"{Style.BRIGHT}✓ {Style.RESET_ALL}{Fore.GREEN}")

    def warning(self, message):
        self._log("WARNING", message, Fore.YELLOW, stream=sys.stderr,
                  prefix=f"{Style.BRIGHT}⚠ {Style.RESET_ALL}{Fore.YELLOW}")

    def error(self, message):
        self._log("ERROR", message, Fore.RED, stream=sys.stderr,
                  prefix=f"{Style.BRIGHT}✖ {Style.RESET_ALL}{Fore.RED}")

    def debug(self, message):
        self._log("DEBUG", message, Fore.WHITE + Style.DIM)

    def tail(self, lines=TAIL_LINES):
        """Return the most recent output lines, oldest first."""
        return list(self._tail)[-lines:]

    def clear_tail(self):
        self._tail.clear()

    # -------- Progress bar method --------
    def progress(self, iterable, description="Downloading", total=None, bar_length=30):
        if not total:
            for item in iterable:
                yield item
            return

        start_time = time.time()
        current_val = 0
        line = ""

        def format_size(bytes_val):
            if bytes_val >= 1024 * 1024 * 1024:
                return f"{bytes_val / (1024*1024*1024):.1f} GB"
            if bytes_val >= 1024 * 1024:
                return f"{bytes_val / (1024*1024):.1f} MB"
            if bytes_val >= 1024:
                return f"{bytes_val / 1024:.1f} KB"
            return f"{int(bytes_val)} B"

        print(f"       {description}...")
        sys.stdout.flush()

        for item in iterable:
            yield item
            current_val += len(item)

            elapsed = time.time() - start_time
            percent = min(1.0, current_val / total)
            filled_len = int(bar_length * percent)

            bar = Fore.GREEN + "━" * filled_len
            if filled_len < bar_length:
                bar += Fore.RED + "╺" + Style.RESET_ALL + "━" * (bar_length - filled_len - 1)
            else:
                bar += Style.RESET_ALL

            speed = current_val / elapsed if elapsed > 0 else 0
            line = (
                f"       {percent*100:3.0f}% | "
                f"{bar} | "
                f"{format_size(current_val)}/{format_size(total)} • "
                f"{speed/(1024*1024):.1f} MB/s"
            )

        if line:
            terminal_width = shutil.get_terminal_size().columns
            if terminal_width < len(line):
                sys.stdout.write("\x1b[F\x1b[F\r")
            else:
                sys.stdout.write("\x1b[F\r")
            print(line)
            sys.stdout.flush()

    # -------- Exception logging --------
    def exception(self, exc_type, exc_value, exc_traceback):
        self.error(f"An unhandled exception occurred: {exc_value}")
        formatted_lines = traceback.format_exception(exc_type, exc_value, exc_traceback)
        for line in formatted_lines:
            for sub_line in line.splitlines():
                if sub_line.strip():
                    self._log("TRACEBACK", f">> {sub_line}", Fore.RED, stream=sys.stderr)


class Metrics:
    """Fire-and-forget build metrics appended to the log file as key#name=value lines."""

    def __init__(self, log):
        self._logger = log

    def _emit(self, kind, name, value):
        self._logger._write(f"{kind}#buildpack.go.{name}={value}\n")

    def emit_count(self, name, value=1):
        self._emit("count", name, value)

    def emit_timing(self, name, duration_ms):
        self._emit("measure", name, f"{int(duration_ms)}ms")

    def emit_size(self, name, size_bytes):
        self._emit("measure", name, f"{int(size_bytes)}B")


# ---------------- Helper ----------------
logger = Logger()
metrics = Metrics(logger)


def get_latest_log_file():
    """Return the path to the latest log file."""
    log_files = [os.path.join(LOG_DIR, f) for f in os.listdir(LOG_DIR) if f.endswith(".log")]
    if not log_files:
        return None
    return max(log_files, key=os.path.getctime)
