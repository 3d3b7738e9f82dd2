"""Path helpers for locating batchpatch configuration and working files."""

from pathlib import Path

from platformdirs import user_config_dir

BATCHPATCH_APP_NAME = "batchpatch"
CONFIG_FILENAME = "config.json"
DEFAULT_STATE_FILENAME = "batchpatch-state.json"
GITCONFIG_FILENAME = ".gitconfig"
DEFAULT_SSH_KEY_RELPATH = Path(".ssh") / "id_rsa"


def batchpatch_config_dir() -> Path:
    """Return the base batchpatch configuration directory.

    Example:
        >>> isinstance(batchpatch_config_dir(), Path)
        True
    """
    return Path(user_config_dir(BATCHPATCH_APP_NAME))


def default_config_path() -> Path:
    """Return the default application config file path.

    Example:
        >>> default_config_path().name == CONFIG_FILENAME
        True
    """
    return batchpatch_config_dir() / CONFIG_FILENAME


def default_state_path() -> Path:
    """Return the default state file path, relative to the working directory."""
    return Path(DEFAULT_STATE_FILENAME)


def user_gitconfig_path(home: Path) -> Path:
    """Return the global gitconfig path for a home directory.

    Example:
        >>> user_gitconfig_path(Path("/home/dev")).as_posix()
        '/home/dev/.gitconfig'
    """
    return home / GITCONFIG_FILENAME


def default_ssh_key_path(home: Path) -> Path:
    """Return the conventional private key location for a home directory.

    Example:
        >>> default_ssh_key_path(Path("/home/dev")).as_posix()
        '/home/dev/.ssh/id_rsa'
    """
    return home / DEFAULT_SSH_KEY_RELPATH


def clone_destination(workdir: Path, owner: str, name: str) -> Path:
    """Return the ``<owner>/<name>`` clone destination under a work directory.

    Example:
        >>> clone_destination(Path("work"), "org", "repo").as_posix()
        'work/org/repo'
    """
    return workdir / owner / name
