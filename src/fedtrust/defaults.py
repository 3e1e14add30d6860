ENTITY_TYPES = [
    "openid_relying_party",
    "openid_provider",
    "oauth_authorization_server",
    "oauth_client",
    "oauth_resource",
    "federation_entity"
]

WELL_KNOWN_FEDERATION_ENDPOINT = "{}/.well-known/openid-federation"

ENTITY_STATEMENT_TYPE = "entity-statement+jwt"
ENTITY_STATEMENT_CONTENT_TYPE = f"application/{ENTITY_STATEMENT_TYPE}"

# Trust chain discovery. The ceilings bound the size of the graph search.
DEFAULT_MAX_TRUST_CHAIN_DEPTH = 10
MAX_TRUST_CHAIN_DEPTH_CEILING = 20
DEFAULT_MAX_AUTHORITY_HINTS = 6
MAX_AUTHORITY_HINTS_CEILING = 12

# In seconds
DEFAULT_MAX_CACHE_DURATION = 86400
DEFAULT_TIMESTAMP_LEEWAY = 60
DEFAULT_ALLOWED_DELTA = 300

TRUST_CHAIN_FUNCTIONS = {
    "fetcher": {
        "class": "fedtrust.entity_statement.fetch.EntityStatementFetcher",
        "kwargs": {
            "allowed_delta": DEFAULT_ALLOWED_DELTA
        }
    },
    "cache": {
        "class": "fedtrust.entity_statement.cache.ESCache",
        "kwargs": {}
    },
    "policy_resolver": {
        "class": "fedtrust.entity.function.policy.MetadataPolicyResolver",
        "kwargs": {}
    },
    "policy_applicator": {
        "class": "fedtrust.entity.function.policy.MetadataPolicyApplicator",
        "kwargs": {}
    }
}
