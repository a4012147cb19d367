"""
Refuge Fetcher

Posts the availability form to the FFCAM booking system for one refuge and
one month anchor and returns the raw HTML.
"""

import logging
from datetime import datetime

import requests

from monitoring.errors import TransportError, UpstreamError, ReauthRequired

logger = logging.getLogger(__name__)

BOOKING_URL = "https://centrale.ffcam.fr/index.php?_lang=GB"
PARENT_URL = "https://montblanc.ffcam.fr/GB_reservation-tout-public.html"
USER_AGENT = "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/136.0.0.0 Safari/537.36"

# Any of these in a response body means the PHPSESSID cookie is no longer valid
REAUTH_MARKERS = [
    "session expired",
    "Votre session a expiré",
    "Your session has expired",
]

DEFAULT_TIMEOUT = 30


def needs_reauth(content):
    """Return True if the page asks us to log in again."""
    lowered = content.lower()
    return any(marker.lower() in lowered for marker in REAUTH_MARKERS)


class RefugeFetcher:
    """
    Issues the availability POST for a refuge.

    Args:
        session_id (str): PHPSESSID cookie value
        pax (str): Number of people to book for
        timeout (int): Request timeout in seconds
        session (requests.Session, optional): Session to reuse
    """

    def __init__(self, session_id, pax="1", timeout=DEFAULT_TIMEOUT, session=None):
        self.session_id = session_id
        self.pax = str(pax)
        self.timeout = timeout
        self.session = session or requests.Session()

    def build_form(self, refuge, anchor):
        return {
            "action": "availability",
            "parent_url": PARENT_URL,
            "mode": "FORM_PREBOOK",
            "productCategory": "nomatter",
            "pax": self.pax,
            "date": anchor.strftime('%Y-%m-%d'),
            "structure": refuge.structure_id,
        }

    def fetch(self, refuge, anchor):
        """
        Fetch the availability page for one refuge.

        Args:
            refuge (Refuge): Refuge to check
            anchor (date): First day of the month to check

        Returns:
            str: Raw HTML response body

        Raises:
            TransportError: On network failure or timeout
            UpstreamError: On a non-200 response
            ReauthRequired: If the response is a login / session-expired page
        """
        logger.info(f"Fetching {refuge.name} availability for {anchor.strftime('%Y-%m')}")

        try:
            response = self.session.post(
                BOOKING_URL,
                data=self.build_form(refuge, anchor),
                headers={
                    "content-type": "application/x-www-form-urlencoded",
                    "user-agent": USER_AGENT,
                },
                cookies={"PHPSESSID": self.session_id},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise TransportError(f"Failed to fetch {refuge.name} page: {e}") from e

        if response.status_code != 200:
            raise UpstreamError(response.status_code, refuge.name)

        content = response.text
        logger.info(
            f"Received {refuge.name} response of length {len(content)} bytes "
            f"at {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}"
        )

        if needs_reauth(content):
            raise ReauthRequired("Session expired - please update the PHPSESSID cookie")

        return content
