from __future__ import annotations

from cfsync.domain.entities import (
    Binding,
    BindingSpec,
    D1Binding,
    KvNamespaceBinding,
    PlainTextBinding,
    R2BucketBinding,
    SecretTextBinding,
)


def to_binding_text(value: object) -> str:
    """Render a JSON scalar the way it was written in cloudflare.json."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def build_bindings(spec: BindingSpec | None, secrets: dict[str, str] | None) -> list[Binding]:
    """
    Translate declared bindings plus out-of-band secrets into the list the
    platform expects.

    Order is fixed: environment variables, secrets, KV, D1, R2. Duplicate
    names across groups are passed through as-is.
    """
    bindings: list[Binding] = []

    if spec is not None:
        for name, value in spec.environment_variables.items():
            bindings.append(PlainTextBinding(name=name, text=to_binding_text(value)))

    for name, value in (secrets or {}).items():
        bindings.append(SecretTextBinding(name=name, text=to_binding_text(value)))

    if spec is not None:
        bindings += [KvNamespaceBinding(name=kv.binding, namespace_id=kv.id) for kv in spec.kv_namespaces]
        bindings += [D1Binding(name=d1.binding, id=d1.database_id) for d1 in spec.d1_databases]
        bindings += [R2BucketBinding(name=r2.binding, bucket_name=r2.bucket_name) for r2 in spec.r2_buckets]

    return bindings
