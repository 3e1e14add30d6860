import logging
from typing import Callable
from typing import Optional
from urllib.parse import urlencode

import requests
from cryptojwt.jwt import utc_time_sans_frac
from idpyoidc.exception import MissingPage
from requests.exceptions import ConnectionError

from fedtrust.defaults import DEFAULT_ALLOWED_DELTA
from fedtrust.defaults import ENTITY_STATEMENT_CONTENT_TYPE
from fedtrust.defaults import WELL_KNOWN_FEDERATION_ENDPOINT
from fedtrust.entity_statement import EntityStatement
from fedtrust.entity_statement import verify_self_signed_signature
from fedtrust.entity_statement.cache import ESCache
from fedtrust.exception import ExpectedSubordinate
from fedtrust.exception import FailedConfigurationRetrieval
from fedtrust.exception import FailedInformationRetrieval
from fedtrust.exception import WrongSubject

logger = logging.getLogger(__name__)


def construct_well_known_url(entity_id: str) -> str:
    return WELL_KNOWN_FEDERATION_ENDPOINT.format(entity_id.rstrip("/"))


def construct_fetch_url(fetch_endpoint: str, subject: str) -> str:
    _query = urlencode({"sub": subject})
    if "?" in fetch_endpoint:
        return f"{fetch_endpoint}&{_query}"
    return f"{fetch_endpoint}?{_query}"


class EntityStatementFetcher(object):
    """
    Gets Entity Configurations and Subordinate Statements from the network.
    Successfully fetched statements are kept until they expire.
    """

    def __init__(self,
                 httpc: Optional[Callable] = None,
                 httpc_params: Optional[dict] = None,
                 allowed_delta: int = DEFAULT_ALLOWED_DELTA,
                 **kwargs):
        self.httpc = httpc or requests.request
        self.httpc_params = httpc_params or {}
        self.allowed_delta = allowed_delta
        self.config_cache = ESCache(allowed_delta=allowed_delta)
        self.entity_statement_cache = ESCache(allowed_delta=allowed_delta)

    def get_document(self, url: str) -> str:
        """

        :param url: Target URL
        :return: Signed EntityStatement
        """
        logger.debug(f"Using HTTPC Params: {self.httpc_params}")
        try:
            response = self.httpc("GET", url, **self.httpc_params)
        except ConnectionError as err:
            logger.error(f'Could not connect to {url}:{err}')
            raise

        if response.status_code == 200:
            _content_type = response.headers.get('Content-Type', '')
            if ENTITY_STATEMENT_CONTENT_TYPE not in _content_type:
                logger.warning(f"Wrong Content-Type: {_content_type}")
            return response.text
        elif response.status_code == 404:
            raise MissingPage(f"No such page: '{url}'")
        else:
            raise FailedInformationRetrieval(
                f"Got status code {response.status_code} from '{url}'")

    def _ttl(self, statement: EntityStatement) -> int:
        return statement.get_expiration_time() - utc_time_sans_frac()

    def fetch_configuration(self, entity_id: str) -> EntityStatement:
        """
        Get configuration information about an entity from itself.

        :param entity_id: About whom the entity configuration should be
        :return: A verified self-signed EntityStatement
        """
        _token = self.config_cache.get(entity_id)
        if _token:
            logger.debug(f"Have cached entity configuration for '{entity_id}'")
            return EntityStatement(_token)

        _url = construct_well_known_url(entity_id)
        logger.debug(f"Get configuration from: {_url}")
        try:
            _token = self.get_document(_url)
        except FailedInformationRetrieval as err:
            raise FailedConfigurationRetrieval(str(err)) from err

        _statement = verify_self_signed_signature(_token)
        if _statement.get_issuer().rstrip("/") != entity_id.rstrip("/"):
            raise WrongSubject(
                f"Entity configuration from '{_url}' issued by '{_statement.get_issuer()}'")

        logger.debug(f'Verified self signed statement: {_statement.payload.to_dict()}')
        self.config_cache.set(_token, self._ttl(_statement), entity_id)
        return _statement

    def fetch_subordinate_statement(self, fetch_endpoint: str, subject: str) -> EntityStatement:
        """
        Get an Entity Statement issued by a superior about one of its subordinates.
        The signature can only be verified once the superior's keys are known, that is
        done when the statement is added to a trust chain.

        :param fetch_endpoint: The federation fetch endpoint of the superior
        :param subject: About whom the entity statement should be
        :return: EntityStatement instance
        """
        _token = self.entity_statement_cache.get(fetch_endpoint, subject)
        if _token:
            logger.debug("Have cached statement")
            return EntityStatement(_token)

        _url = construct_fetch_url(fetch_endpoint, subject)
        logger.debug(f"Get subordinate statement from: {_url}")
        _token = self.get_document(_url)
        _statement = EntityStatement(_token)
        if _statement.get_subject() != subject:
            raise WrongSubject(
                f"Asked for statement about '{subject}', got one about '{_statement.get_subject()}'")
        if _statement.is_configuration():
            raise ExpectedSubordinate(f"Got an entity configuration from '{_url}'")

        self.entity_statement_cache.set(_token, self._ttl(_statement), fetch_endpoint, subject)
        return _statement
