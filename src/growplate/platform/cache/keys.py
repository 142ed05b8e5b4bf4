"""Cache key layout shared with every other service reading the same Redis."""


def tenant_domain_key(domain: str) -> str:
    return f"tenant:domain:{domain}"


def tenant_subdomain_key(subdomain: str) -> str:
    return f"tenant:subdomain:{subdomain}"


def tenant_id_key(tenant_id: str) -> str:
    return f"tenant:id:{tenant_id}"


def tenant_features_key(tenant_id: str) -> str:
    return f"tenant:features:{tenant_id}"
