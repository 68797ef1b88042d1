"""
Catalog model — the declared desired state of the workstation.

Loaded from catalog YAML, this is the canonical list of everything the
provisioner installs. If something isn't declared here, it doesn't
exist to the provisioner. URLs and versions are data, never logic.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator


def _expand(path: str) -> Path:
    return Path(path).expanduser()


class Settings(BaseModel):
    """Locations and execution knobs shared by every step."""

    programs_dir: str = "~/programs"
    resources_dir: str = "~/resources"
    config_dir: str = "~/.config"
    state_dir: str = "~/.osintvm"
    shell_rc: str = "~/.bashrc"

    go_root: str = "/usr/local/go"
    go_path: str = "~/go"

    python: str = "python3"
    sudo: Literal["auto", "always", "never"] = "auto"
    command_timeout: int | None = None  # None = block until the command exits

    @property
    def programs_path(self) -> Path:
        return _expand(self.programs_dir)

    @property
    def resources_path(self) -> Path:
        return _expand(self.resources_dir)

    @property
    def config_path(self) -> Path:
        return _expand(self.config_dir)

    @property
    def state_path(self) -> Path:
        return _expand(self.state_dir)

    @property
    def shell_rc_path(self) -> Path:
        return _expand(self.shell_rc)

    @property
    def go_path_dir(self) -> Path:
        return _expand(self.go_path)


class Snap(BaseModel):
    """A snap package; classic snaps need ``--classic`` confinement."""

    name: str
    classic: bool = False


class DnsConfig(BaseModel):
    """Static resolvers written to the resolvconf head file."""

    nameservers: list[str] = Field(default_factory=list)
    head_file: str = "/etc/resolvconf/resolv.conf.d/head"


class MongoDbConfig(BaseModel):
    """Third-party apt repository for MongoDB."""

    key_url: str
    keyring: str = "/usr/share/keyrings/mongodb-archive-keyring.gpg"
    list_file: str = "/etc/apt/sources.list.d/mongodb.list"
    source_line: str
    packages: list[str] = Field(default_factory=lambda: ["mongodb-org"])
    service: str = "mongod"


class GoToolchain(BaseModel):
    """Where to find the latest Go release and how to name its archive."""

    version_url: str = "https://go.dev/VERSION?m=text"
    download_url_template: str = "https://go.dev/dl/{version}.linux-amd64.tar.gz"
    archive: str = "{version}.linux-amd64.tar.gz"  # local file name, under the temp dir


class Binary(BaseModel):
    """A prebuilt executable dropped into ``$GOPATH/bin``."""

    name: str
    url: str


class RepositoryDescriptor(BaseModel):
    """A git-cloned tool and the isolated environment it installs into.

    ``manager`` selects how dependencies are installed:
        auto    — detect from manifests (requirements.txt → venv,
                  poetry.lock / Pipfile → poetry)
        venv    — always create ``env`` and install requirements.txt
        poetry  — always delegate to ``poetry install``
        none    — clone only
    """

    url: str
    env: str
    subdir: str = ""
    manager: Literal["auto", "venv", "poetry", "none"] = "auto"
    install_project: bool = False

    @field_validator("url")
    @classmethod
    def _url_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("repository url must not be empty")
        return v.strip()

    @field_validator("env")
    @classmethod
    def _env_is_plain_name(cls, v: str) -> str:
        # The environment must be its own directory inside the clone
        v = v.strip()
        if not v or "/" in v or v in (".", ".."):
            raise ValueError(f"invalid environment name {v!r}")
        return v

    @property
    def directory_name(self) -> str:
        """Local directory name derived from the clone URL."""
        return repo_dir_name(self.url)


class Download(BaseModel):
    """One file of a release artifact."""

    url: str
    extract: bool = False


class Artifact(BaseModel):
    """A prebuilt release unpacked into its own directory under programs."""

    name: str
    downloads: list[Download] = Field(default_factory=list)
    executable: list[str] = Field(default_factory=list)  # globs, relative to the artifact dir


class ResourceRepo(BaseModel):
    """A reference repository cloned for reading, not installing."""

    url: str
    root: Literal["resources", "config"] = "resources"
    subdir: str = ""

    @property
    def directory_name(self) -> str:
        return repo_dir_name(self.url)


class InstallerScript(BaseModel):
    """A vendor-provided installer script, fetched and run once."""

    name: str
    url: str
    interpreter: str = "bash"


class Catalog(BaseModel):
    """Root catalog — loaded from catalog YAML."""

    version: int = 1
    name: str = "osint-vm"
    description: str = ""

    settings: Settings = Field(default_factory=Settings)

    base_packages: list[str] = Field(
        default_factory=lambda: ["build-essential", "curl", "git", "wget"]
    )
    apt_packages: list[str] = Field(default_factory=list)
    dns: DnsConfig = Field(default_factory=DnsConfig)
    services: list[str] = Field(default_factory=list)
    mongodb: MongoDbConfig | None = None
    go_toolchain: GoToolchain = Field(default_factory=GoToolchain)

    gems: list[str] = Field(default_factory=list)
    snaps: list[Snap] = Field(default_factory=list)
    pipx_packages: list[str] = Field(default_factory=list)
    go_tools: list[str] = Field(default_factory=list)
    binaries: list[Binary] = Field(default_factory=list)

    repositories: list[RepositoryDescriptor] = Field(default_factory=list)
    artifacts: list[Artifact] = Field(default_factory=list)
    debs: list[str] = Field(default_factory=list)
    resources: list[ResourceRepo] = Field(default_factory=list)
    scripts: list[InstallerScript] = Field(default_factory=list)

    @field_validator("snaps", mode="before")
    @classmethod
    def _coerce_snaps(cls, v: object) -> object:
        # Allow bare names in YAML: ``- ngrok`` == ``- {name: ngrok}``
        if isinstance(v, list):
            return [{"name": s} if isinstance(s, str) else s for s in v]
        return v

    def duplicate_packages(self) -> dict[str, list[str]]:
        """Package names listed more than once, per list."""
        lists = {
            "base_packages": self.base_packages,
            "apt_packages": self.apt_packages,
            "gems": self.gems,
            "pipx_packages": self.pipx_packages,
            "go_tools": self.go_tools,
            "snaps": [s.name for s in self.snaps],
        }
        dupes: dict[str, list[str]] = {}
        for key, names in lists.items():
            repeated = sorted({n for n in names if names.count(n) > 1})
            if repeated:
                dupes[key] = repeated
        return dupes


def repo_dir_name(url: str) -> str:
    """Directory a ``git clone <url>`` creates: basename without ``.git``.

    >>> repo_dir_name("https://github.com/acme/example-tool.git")
    'example-tool'
    """
    name = url.rstrip("/").rsplit("/", 1)[-1]
    if name.endswith(".git"):
        name = name[: -len(".git")]
    return name


def unique(names: list[str]) -> list[str]:
    """Drop repeated names, keeping first occurrence order."""
    return list(dict.fromkeys(names))
