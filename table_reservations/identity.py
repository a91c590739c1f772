"""
Identity provider adapters used by /signup and /signin.

Cognito needs a user pool id and an app client id. Both can be configured
explicitly; otherwise they are looked up once per provider instance, by pool
name and by taking the pool's first client.
"""

from abc import ABC, abstractmethod
import logging
import threading
from typing import Optional

from .errors import IdentityProviderError

logger = logging.getLogger(__name__)

NEW_PASSWORD_REQUIRED = "NEW_PASSWORD_REQUIRED"
POOL_PAGE_SIZE = 60


class IdentityProvider(ABC):
    """Abstract base class for user directories."""

    @abstractmethod
    def create_user(self, email: str, password: str, attributes: dict[str, str]) -> None:
        """
        Register a user.

        Args:
            email: Username and email attribute
            password: Initial password
            attributes: Extra user attributes, by provider attribute name
        """
        ...

    @abstractmethod
    def authenticate(self, email: str, password: str) -> str:
        """Validate credentials and return a token for the user."""
        ...


class CognitoIdentityProvider(IdentityProvider):
    """Identity provider backed by an Amazon Cognito user pool."""

    def __init__(
        self,
        client,
        user_pool_name: str,
        user_pool_id: Optional[str] = None,
        client_id: Optional[str] = None,
    ):
        self.client = client
        self.user_pool_name = user_pool_name
        self._user_pool_id = user_pool_id
        self._client_id = client_id
        self._lock = threading.Lock()

    @property
    def user_pool_id(self) -> str:
        with self._lock:
            if self._user_pool_id is None:
                self._user_pool_id = self._find_user_pool_id()
            return self._user_pool_id

    @property
    def client_id(self) -> str:
        pool_id = self.user_pool_id
        with self._lock:
            if self._client_id is None:
                self._client_id = self._find_client_id(pool_id)
            return self._client_id

    def _find_user_pool_id(self) -> str:
        paginator = self.client.get_paginator("list_user_pools")
        for page in paginator.paginate(MaxResults=POOL_PAGE_SIZE):
            for pool in page.get("UserPools", []):
                if pool.get("Name") == self.user_pool_name:
                    logger.info("Resolved user pool %s -> %s", self.user_pool_name, pool["Id"])
                    return pool["Id"]
        raise IdentityProviderError(f"User pool with name {self.user_pool_name} not found")

    def _find_client_id(self, user_pool_id: str) -> str:
        response = self.client.list_user_pool_clients(
            UserPoolId=user_pool_id,
            MaxResults=POOL_PAGE_SIZE,
        )
        clients = response.get("UserPoolClients", [])
        if not clients:
            raise IdentityProviderError("No Client ID found")
        return clients[0]["ClientId"]

    def create_user(self, email: str, password: str, attributes: dict[str, str]) -> None:
        user_attributes = [{"Name": name, "Value": value} for name, value in attributes.items()]
        user_attributes.append({"Name": "email", "Value": email})

        self.client.admin_create_user(
            UserPoolId=self.user_pool_id,
            Username=email,
            UserAttributes=user_attributes,
            MessageAction="SUPPRESS",
            TemporaryPassword=password,
        )

    def authenticate(self, email: str, password: str) -> str:
        client_id = self.client_id
        response = self.client.initiate_auth(
            AuthFlow="USER_PASSWORD_AUTH",
            ClientId=client_id,
            AuthParameters={"USERNAME": email, "PASSWORD": password},
        )

        if response.get("ChallengeName") == NEW_PASSWORD_REQUIRED:
            # Users are created with a temporary password; keep it as the permanent one.
            challenge = self.client.respond_to_auth_challenge(
                ClientId=client_id,
                ChallengeName=NEW_PASSWORD_REQUIRED,
                Session=response["Session"],
                ChallengeResponses={"USERNAME": email, "NEW_PASSWORD": password},
            )
            return challenge["AuthenticationResult"]["AccessToken"]

        return response["AuthenticationResult"]["IdToken"]
