from .cache import cache
from .compile import compile
from .config import config
from .detect import detect
from .log import log
from .version import version
