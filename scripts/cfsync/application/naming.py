from __future__ import annotations


def normalize_branch_name(branch: str) -> str:
    """
    Make a branch name safe for a worker name.
    Lower-cases it and turns every "/" into "-". Idempotent.
    """
    return branch.replace("/", "-").lower()


def is_production(branch: str, production_branch: str) -> bool:
    # Exact, case-sensitive match: "Main" is not "main".
    return branch == production_branch


def get_deployment_identity(base_name: str, branch: str, production_branch: str) -> str:
    """
    Name a worker is published under for a given branch.

        get_deployment_identity("api", "main", "main")         → "api"
        get_deployment_identity("api", "feature/auth", "main") → "feature-auth-api"

    Distinct branches map to distinct names, so preview runs for different
    branches never overwrite each other.
    """
    if is_production(branch, production_branch):
        return base_name
    return f"{normalize_branch_name(branch)}-{base_name}"
