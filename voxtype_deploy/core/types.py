"""
Type definitions for the artifacts of a resolution pass.

Every artifact is an immutable pydantic model derived from one validated
options tree: the resolved model reference, the compiled config document,
the wrapped executable and the optional service descriptor.
"""

from typing import Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field


class FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True)


class FetchedModel(FrozenModel):
    """
    A catalog model fetched and verified against its pinned digest.

    Only resolved_local_path is carried into the compiled config; the other
    fields exist for reporting at resolution time.
    """

    kind: Literal["fetched"] = "fetched"
    symbolic_name: str = Field(..., description="Catalog name, e.g. base.en")
    content_hash: str = Field(..., description="Verified digest, '<algorithm>:<hex>'")
    source_url: str = Field(..., description="Where the content was fetched from")
    resolved_local_path: str = Field(..., description="Local path of the verified file")


class ExplicitModelRef(FrozenModel):
    """A user-managed model file, used as-is."""

    kind: Literal["explicit"] = "explicit"
    resolved_local_path: str


ModelReference = Union[FetchedModel, ExplicitModelRef]


class CompiledConfig(FrozenModel):
    """
    The daemon config document produced by one resolution pass.

    document holds the canonical (sorted-key) structure; text is its TOML
    rendering and digest the sha256 of that text.
    """

    document: Dict[str, Any]
    text: str
    digest: str


class WrappedExecutableRef(FrozenModel):
    """An executable composed with a runtime dependency search path."""

    name: str = Field(..., description="Wrapper name, e.g. voxtype-wrapped-1.2.0")
    package_path: str = Field(..., description="Root of the original package")
    executable: str = Field(..., description="Executable name under bin/")
    original_executable: str = Field(..., description="Absolute path of the untouched executable")
    dependencies: Tuple[str, ...] = Field(..., description="Declared runtime dependency names")
    search_path: Tuple[str, ...] = Field(..., description="Directories prepended to PATH, in order")
    missing: Tuple[str, ...] = Field(default=(), description="Declared dependencies that were not found")
    digest: str = Field(..., description="Content address of the wrapper")
    launcher: str = Field(..., description="Launcher script text")
    store_path: str = Field(..., description="Content-addressed install directory")

    @property
    def executable_path(self) -> str:
        """Path the wrapped executable is invoked at once installed."""
        return f"{self.store_path}/bin/{self.executable}"


class RestartPolicy(FrozenModel):
    mode: Literal["no", "on-failure", "always"] = "on-failure"
    delay_secs: int = 5


class ActivationDependencies(FrozenModel):
    """Ordering requirements stated for the host supervisor to enforce."""

    after: Tuple[str, ...] = ()
    part_of: Tuple[str, ...] = ()


class ServiceDescriptor(FrozenModel):
    """A declarative description of how the supervisor runs a service."""

    name: str
    description: str
    documentation: Optional[str] = None
    exec_command: str
    service_type: str = "simple"
    restart_policy: RestartPolicy = Field(default_factory=RestartPolicy)
    activation_dependencies: ActivationDependencies = Field(default_factory=ActivationDependencies)
    enablement: Tuple[str, ...] = Field(default=(), description="Targets that want this service")

    @property
    def unit_name(self) -> str:
        return f"{self.name}.service"


class Deployment(FrozenModel):
    """Every artifact of one resolution pass, computed before anything is written."""

    enabled: bool = True
    model: Optional[ModelReference] = None
    compiled: Optional[CompiledConfig] = None
    wrapper: Optional[WrappedExecutableRef] = None
    services: List[ServiceDescriptor] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
