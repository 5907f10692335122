"""Bitbucket API authentication helper."""

import os
from typing import Optional

import requests

from .exceptions import AuthenticationError

USER_AGENT = "pipeline-diagnostics/0.1"


class BitbucketAuthenticator:
    """Builds an authenticated requests session for the Bitbucket API.

    Supports an app password (basic auth) or an access token (bearer).
    Credentials come from constructor arguments or environment variables;
    the session is created lazily and cached.
    """

    def __init__(
        self,
        username: Optional[str] = None,
        app_password: Optional[str] = None,
        access_token: Optional[str] = None,
    ):
        """Initialize the authenticator.

        Args:
            username: Bitbucket username. Defaults to BITBUCKET_USERNAME env var.
            app_password: App password. Defaults to BITBUCKET_APP_PASSWORD env var.
            access_token: Repository/workspace access token. Defaults to
                BITBUCKET_ACCESS_TOKEN env var. Takes precedence over
                username/app_password when both are configured.
        """
        self._username = username or os.environ.get("BITBUCKET_USERNAME")
        self._app_password = app_password or os.environ.get("BITBUCKET_APP_PASSWORD")
        self._access_token = access_token or os.environ.get("BITBUCKET_ACCESS_TOKEN")
        self._session: Optional[requests.Session] = None

    def _apply_credentials(self, session: requests.Session) -> None:
        if self._access_token:
            session.headers["Authorization"] = f"Bearer {self._access_token}"
            return
        if self._username and self._app_password:
            session.auth = (self._username, self._app_password)
            return
        raise AuthenticationError(
            "No Bitbucket credentials configured. Set BITBUCKET_ACCESS_TOKEN, or "
            "BITBUCKET_USERNAME and BITBUCKET_APP_PASSWORD."
        )

    def get_session(self) -> requests.Session:
        """Get or create the authenticated session.

        Returns:
            requests.Session with auth and default headers applied.

        Raises:
            AuthenticationError: If no credentials are configured.
        """
        if self._session is None:
            session = requests.Session()
            session.headers.update(
                {"Accept": "application/json", "User-Agent": USER_AGENT}
            )
            self._apply_credentials(session)
            self._session = session
        return self._session
