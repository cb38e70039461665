"""
Host function registry: functions are invoked by name from
`execution_metadata.function_name`.
"""

from .handlers import (
    check_auth,
    extraction,
    fetch_contacts,
    fetch_projects,
    fetch_tasks,
    generate_external_domain_metadata,
    generate_initial_domain_mapping,
    healthcheck,
)

FUNCTION_REGISTRY = {
    "extraction": extraction,
    "healthcheck": healthcheck,
    "check_auth": check_auth,
    "fetch_projects": fetch_projects,
    "fetch_tasks": fetch_tasks,
    "fetch_contacts": fetch_contacts,
    "generate_initial_domain_mapping": generate_initial_domain_mapping,
    "generate_external_domain_metadata": generate_external_domain_metadata,
}


def get_function(name: str):
    """Get a host function by name."""
    if name not in FUNCTION_REGISTRY:
        raise ValueError(f"Unknown function: {name}")
    return FUNCTION_REGISTRY[name]
