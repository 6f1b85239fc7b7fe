import toml
import os
from dataclasses import dataclass, field, asdict
from .cli_logger import logger

CONFIG_FILE = "gobuildpack.toml"

DEFAULT_GO_VERSION = "go1.22"
DEFAULT_STACK = "heroku-22"

# Environment names that are still honored but should be migrated
LEGACY_ENV_ALIASES = {
    "GLIDE_SKIP_INSTALL": "GO_SKIP_DEPENDENCY_SYNC",
}

RECOGNIZED_ENV = (
    "GO_INSTALL_PACKAGE_SPEC",
    "GO_DISABLE_CACHE",
    "GO_SETUP_GOPATH_FOR_MODULE_CACHE",
    "GO_SKIP_DEPENDENCY_SYNC",
    "GO_CACHE_DIRECTORIES",
    "GO_LINKER_SYMBOL",
    "GO_LINKER_VALUE",
    "GO_INSTALL_TOOLS_IN_IMAGE",
    "GO_SETUP_GOPATH_IN_IMAGE",
    "GOVERSION",
    "STACK",
)

TRUE_VALUES = {"1", "true", "yes", "on"}


def load_config(path="."):
    config_path = os.path.join(path, CONFIG_FILE)
    if os.path.exists(config_path):
        logger.info(f"Loading configuration from {config_path}")
        try:
            with open(config_path, "r") as f:
                return toml.load(f)
        except toml.TomlDecodeError as e:
            logger.error(f"Error decoding TOML file at {config_path}: {e}")
            logger.info("Please check the file's format for syntax errors.")
        except IOError as e:
            logger.error(f"Error reading configuration file at {config_path}: {e}")
            logger.info("Please check file permissions.")
    return {}


def save_config(config, path="."):
    config_path = os.path.join(path, CONFIG_FILE)
    logger.info(f"Saving configuration to {config_path}")
    try:
        with open(config_path, "w") as f:
            toml.dump(config, f)
        return True
    except IOError as e:
        logger.error(f"Error saving configuration to {config_path}: {e}")
        logger.info("Please check file permissions and ensure the directory is writable.")
        return False


def read_env_dir(env_dir):
    """Read a Heroku-style env dir: one file per variable, file content is the value."""
    values = {}
    if not env_dir or not os.path.isdir(env_dir):
        return values
    for name in sorted(os.listdir(env_dir)):
        file_path = os.path.join(env_dir, name)
        if not os.path.isfile(file_path):
            continue
        try:
            with open(file_path, "r") as f:
                values[name] = f.read().strip()
        except IOError as e:
            logger.warning(f"Could not read {name} from env dir: {e}")
    return values


def _flag(env, name):
    return env.get(name, "").strip().lower() in TRUE_VALUES


@dataclass(frozen=True)
class BuildConfig:
    """Options for one build, populated once at startup."""

    package_spec_override: tuple = ()
    disable_cache: bool = False
    module_cache_in_gopath: bool = False
    skip_dependency_sync: bool = False
    go_version: str = ""
    stack: str = DEFAULT_STACK
    linker_symbol: str = ""
    linker_value: str = ""
    install_tools_in_image: bool = False
    setup_gopath_in_image: bool = False
    cache_directories: tuple = ()
    git_credentials: dict = field(default_factory=dict)
    warnings: tuple = ()

    def to_dict(self):
        data = asdict(self)
        # tokens stay out of logs and metadata
        data["git_credentials"] = sorted(self.git_credentials)
        return data


def _git_credentials(env):
    """Map GO_GIT_CRED__HTTPS__GITHUB__COM=token to {"https://github.com": token}."""
    creds = {}
    for name, value in env.items():
        if not name.startswith("GO_GIT_CRED__") or not value:
            continue
        parts = name[len("GO_GIT_CRED__"):].split("__")
        if len(parts) < 2:
            continue
        protocol = parts[0].lower()
        host = ".".join(p.lower() for p in parts[1:])
        creds[f"{protocol}://{host}"] = value
    return creds


def _project_cache_directories(project_conf, warnings):
    """Return `[cache] directories` from gobuildpack.toml, or [] with a warning if it is malformed."""
    cache = project_conf.get("cache", {})
    if not isinstance(cache, dict):
        warnings.append(f"Ignoring [cache] in {CONFIG_FILE}: expected a table.")
        return []
    directories = cache.get("directories", [])
    if not isinstance(directories, list) or not all(isinstance(d, str) for d in directories):
        warnings.append(f"Ignoring cache.directories in {CONFIG_FILE}: expected a list of strings.")
        return []
    return [d.strip() for d in directories if d.strip()]


def load_build_config(env_dir=None, build_dir=None, environ=None):
    """Build a validated BuildConfig from the environment, the env dir and gobuildpack.toml.

    Env dir values win over the process environment. Problems with individual
    options become warnings and the option falls back to its default.
    """
    env = dict(os.environ if environ is None else environ)
    env.update(read_env_dir(env_dir))
    warnings = []

    for legacy, current in LEGACY_ENV_ALIASES.items():
        if legacy in env:
            warnings.append(f"{legacy} is deprecated, use {current} instead.")
            env.setdefault(current, env[legacy])

    spec = tuple(env.get("GO_INSTALL_PACKAGE_SPEC", "").split())

    linker_symbol = env.get("GO_LINKER_SYMBOL", "").strip()
    linker_value = env.get("GO_LINKER_VALUE", "").strip()
    if bool(linker_symbol) != bool(linker_value):
        warnings.append(
            "Only one of GO_LINKER_SYMBOL and GO_LINKER_VALUE is set; both are needed, ignoring."
        )

    project_conf = load_config(build_dir) if build_dir else {}
    cache_dirs = [d.strip() for d in env.get("GO_CACHE_DIRECTORIES", "").split(",") if d.strip()]
    if not cache_dirs:
        cache_dirs = _project_cache_directories(project_conf, warnings)
    valid_dirs = []
    for d in cache_dirs:
        if os.path.isabs(d) or ".." in d.replace("\\", "/").split("/"):
            warnings.append(f"Ignoring cache directory '{d}': must be relative to the build directory.")
            continue
        valid_dirs.append(os.path.normpath(d))

    go_version = env.get("GOVERSION", "").strip()

    return BuildConfig(
        package_spec_override=spec,
        disable_cache=_flag(env, "GO_DISABLE_CACHE"),
        module_cache_in_gopath=_flag(env, "GO_SETUP_GOPATH_FOR_MODULE_CACHE"),
        skip_dependency_sync=_flag(env, "GO_SKIP_DEPENDENCY_SYNC"),
        go_version=go_version,
        stack=env.get("STACK", "").strip() or DEFAULT_STACK,
        linker_symbol=linker_symbol,
        linker_value=linker_value,
        install_tools_in_image=_flag(env, "GO_INSTALL_TOOLS_IN_IMAGE"),
        setup_gopath_in_image=_flag(env, "GO_SETUP_GOPATH_IN_IMAGE"),
        cache_directories=tuple(valid_dirs),
        git_credentials=_git_credentials(env),
        warnings=tuple(warnings),
    )
