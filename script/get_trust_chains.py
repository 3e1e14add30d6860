#!/usr/bin/env python3
import argparse
import json

from idpyoidc.logging import configure_logging

from fedtrust.defaults import ENTITY_TYPES
from fedtrust.exception import NoTrustChainResolved
from fedtrust.utils import make_trust_chain_resolver

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    "root": {
        "handlers": ["console"],
        "level": "DEBUG"
    },
    "loggers": {
        "fedtrust": {
            "level": "DEBUG"}
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stdout",

            "formatter": "default"},
    },
    "formatters": {
        "default": {
            "format": '%(asctime)s %(name)s %(levelname)s %(message)s'}
    }
}

if __name__ == '__main__':
    parser = argparse.ArgumentParser()
    parser.add_argument('-k', dest='insecure', action='store_true')
    parser.add_argument('-t', dest='trust_anchors', required=True)
    parser.add_argument('-l', dest='logging', action='store_true')
    parser.add_argument('-e', dest='entity_type', default="openid_relying_party",
                        choices=ENTITY_TYPES)
    parser.add_argument(dest="url")
    args = parser.parse_args()

    if args.logging:
        logger = configure_logging(config=LOGGING).getChild(__name__)

    conf = {"trust_anchors": args.trust_anchors}
    if args.insecure:
        conf["httpc_params"] = {"verify": False}

    resolver = make_trust_chain_resolver(conf)

    try:
        trust_chains = resolver(args.url, list(resolver.trust_anchors.keys()))
    except NoTrustChainResolved:
        print("No chains")
        raise SystemExit(1)

    for trust_chain in trust_chains:
        print(20 * "=", f" Trust Chain for: {args.url} ending in "
                        f"{trust_chain.get_resolved_trust_anchor_id()} ", 20 * "=")
        for statement in trust_chain.get_statements():
            if statement.is_configuration():
                print(20 * "-", f"Entity Configuration for: {statement.get_issuer()}", 20 * "-")
            else:
                print(20 * "-", f"Subordinate statement about: {statement.get_subject()} from "
                                f"{statement.get_issuer()}", 20 * "-")
            print(json.dumps(statement.payload.to_dict(), sort_keys=True, indent=2))

        print(20 * "-", f"Resolved {args.entity_type} metadata", 20 * "-")
        print(json.dumps(trust_chain.get_resolved_metadata(args.entity_type), sort_keys=True,
                         indent=2))
