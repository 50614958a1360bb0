from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum


@dataclass(frozen=True)
class RepoRef:
    """GitHub repository a Pages project is connected to."""
    owner: str
    name:  str


@dataclass(frozen=True)
class BuildSettings:
    """
    Declared build configuration, in cloudflare.json vocabulary.
    Any field may be unset; the reconciler maps unset fields to
    the platform defaults.
    """
    command: str | None = None
    output:  str | None = None
    root:    str | None = None


@dataclass(frozen=True)
class PreviewSettings:
    """Preview-branch include/exclude patterns."""
    branches: tuple[str, ...] | None = None
    exclude:  tuple[str, ...] | None = None


@dataclass(frozen=True)
class DesiredProjectConfig:
    """
    Immutable desired state of a Pages project.

    `name` is the project's identity on the platform. Changing it targets
    a different project; it is never treated as a rename.
    """
    name:              str
    repo:              RepoRef
    production_branch: str
    build:             BuildSettings   = field(default_factory=BuildSettings)
    preview:           PreviewSettings = field(default_factory=PreviewSettings)
    allow_recreate:    bool            = False


class SourceKind(str, Enum):
    """How a remote Pages project receives its deployments."""
    GITHUB        = "github"
    DIRECT_UPLOAD = "direct_upload"
    UNKNOWN       = "unknown"

    @classmethod
    def from_wire(cls, value: str | None) -> "SourceKind":
        if value == cls.GITHUB.value:
            return cls.GITHUB
        if value == cls.DIRECT_UPLOAD.value:
            return cls.DIRECT_UPLOAD
        return cls.UNKNOWN


@dataclass(frozen=True)
class RemoteProjectRecord:
    """
    Read-only snapshot of a Pages project as the platform reports it.
    `subdomain` is only assigned once creation has completed.
    """
    name:        str
    source_kind: SourceKind
    subdomain:   str | None = None


@dataclass(frozen=True)
class KvNamespaceRef:
    binding: str
    id:      str


@dataclass(frozen=True)
class D1DatabaseRef:
    binding:     str
    database_id: str


@dataclass(frozen=True)
class R2BucketRef:
    binding:     str
    bucket_name: str


@dataclass(frozen=True)
class BindingSpec:
    """
    Declared worker bindings, grouped by source.
    Secrets are deliberately absent: they arrive out-of-band at publish time.
    """
    environment_variables: dict[str, str | int | float | bool] = field(default_factory=dict)
    kv_namespaces:         tuple[KvNamespaceRef, ...]          = ()
    d1_databases:          tuple[D1DatabaseRef, ...]           = ()
    r2_buckets:            tuple[R2BucketRef, ...]             = ()


@dataclass(frozen=True)
class DesiredArtifactConfig:
    """Immutable desired state of the companion worker script."""
    name:                str
    main:                str
    compatibility_date:  str
    build_command:       str | None      = None
    compatibility_flags: tuple[str, ...] = ()
    deploy_previews:     bool            = True
    bindings:            BindingSpec     = field(default_factory=BindingSpec)


# ---------------------------------------------------------------------------
# Bindings, as submitted to the platform
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PlainTextBinding:
    name: str
    text: str
    type: str = "plain_text"

    def to_payload(self) -> dict:
        return {"name": self.name, "type": self.type, "text": self.text}


@dataclass(frozen=True)
class SecretTextBinding:
    name: str
    text: str
    type: str = "secret_text"

    def to_payload(self) -> dict:
        return {"name": self.name, "type": self.type, "text": self.text}


@dataclass(frozen=True)
class KvNamespaceBinding:
    name:         str
    namespace_id: str
    type:         str = "kv_namespace"

    def to_payload(self) -> dict:
        return {"name": self.name, "type": self.type, "namespace_id": self.namespace_id}


@dataclass(frozen=True)
class D1Binding:
    name: str
    id:   str
    type: str = "d1"

    def to_payload(self) -> dict:
        return {"name": self.name, "type": self.type, "id": self.id}


@dataclass(frozen=True)
class R2BucketBinding:
    name:        str
    bucket_name: str
    type:        str = "r2_bucket"

    def to_payload(self) -> dict:
        return {"name": self.name, "type": self.type, "bucket_name": self.bucket_name}


Binding = PlainTextBinding | SecretTextBinding | KvNamespaceBinding | D1Binding | R2BucketBinding


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CommandResult:
    """Outcome of a blocking shell command."""
    command:    str
    returncode: int

    @property
    def ok(self) -> bool:
        return self.returncode == 0


@dataclass(frozen=True)
class ProjectSyncResult:
    url: str


@dataclass(frozen=True)
class ArtifactPublication:
    """Name and public URL of a published worker."""
    name: str
    url:  str


@dataclass(frozen=True)
class SyncResult:
    """
    Immutable value object summarising one sync run.
    Returned by the application service when the run finishes.
    """
    status:        str
    elapsed_secs:  float
    pages_url:     str | None  = None
    worker_name:   str | None  = None
    worker_url:    str | None  = None
    error_message: str | None  = None
    error_details: list | None = None
