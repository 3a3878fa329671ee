"""
Freshdesk API Client

Provides the Freshdesk API v2 calls the reconciliation engine needs:
- Ticket create / update / fetch
- Conversation listing (paginated)
- Note posting
- Retry with exponential backoff on rate limit and server errors

Every failure leaves this module as RemoteError.
"""
import httpx
from typing import Dict, Any, Optional, List
from ticketdesk.config import get_settings
from ticketdesk.exceptions import IntegrationDisabled, RemoteError
from ticketdesk.utils.logger import get_logger
import asyncio

settings = get_settings()
logger = get_logger(__name__)

RETRYABLE_STATUS_CODES = (429, 500, 502, 503, 504)


class FreshdeskClient:
    """
    Freshdesk API integration with retry logic and error handling
    """

    def __init__(
        self,
        domain: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None
    ):
        self.domain = settings.freshdesk_domain if domain is None else domain
        self.api_key = settings.freshdesk_api_key if api_key is None else api_key
        self.base_url = f"https://{self.domain}/api/v2"
        self.headers = {
            "Content-Type": "application/json"
        }
        self.timeout = settings.freshdesk_timeout if timeout is None else timeout
        self.max_retries = settings.freshdesk_max_retries if max_retries is None else max_retries

        if not self.enabled:
            logger.warning("Freshdesk credentials not configured. Integration disabled.")

    @property
    def enabled(self) -> bool:
        return bool(self.domain and self.api_key)

    def ticket_url(self, ticket_id: int) -> str:
        """Agent-facing URL of a Freshdesk ticket"""
        return f"https://{self.domain}/a/tickets/{ticket_id}"

    async def _make_request(
        self,
        method: str,
        endpoint: str,
        **kwargs
    ) -> Any:
        """
        Make HTTP request with retry logic

        Args:
            method: HTTP method (GET, POST, PUT, etc.)
            endpoint: API endpoint
            **kwargs: Additional arguments for httpx

        Returns:
            Response JSON

        Raises:
            IntegrationDisabled: Credentials are not configured
            RemoteError: On HTTP errors after retries, transport errors or timeouts
        """
        if not self.enabled:
            raise IntegrationDisabled()

        url = f"{self.base_url}/{endpoint}"

        for attempt in range(self.max_retries):
            try:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.request(
                        method=method,
                        url=url,
                        auth=(self.api_key, "X"),
                        headers=self.headers,
                        **kwargs
                    )
                    response.raise_for_status()
                    return response.json()

            except httpx.HTTPStatusError as e:
                status_code = e.response.status_code
                if status_code in RETRYABLE_STATUS_CODES and attempt < self.max_retries - 1:
                    wait_time = 2 ** attempt  # Exponential backoff
                    logger.warning(
                        f"Request failed (attempt {attempt + 1}/{self.max_retries}), "
                        f"retrying in {wait_time}s: {e}"
                    )
                    await asyncio.sleep(wait_time)
                    continue
                logger.error(f"{method} {endpoint} failed with HTTP {status_code}")
                raise RemoteError(
                    f"Freshdesk {method} {endpoint} returned HTTP {status_code}",
                    status_code=status_code
                ) from e
            except httpx.TimeoutException as e:
                logger.error(f"{method} {endpoint} timed out after {self.timeout}s")
                raise RemoteError(f"Freshdesk {method} {endpoint} timed out") from e
            except httpx.HTTPError as e:
                logger.error(f"Request failed: {e}")
                raise RemoteError(f"Freshdesk {method} {endpoint} failed: {e}") from e

        raise RemoteError(f"Freshdesk {method} {endpoint} failed after {self.max_retries} attempts")

    async def create_ticket(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create a ticket

        Args:
            payload: Freshdesk ticket body (subject, description, email, priority, status, ...)

        Returns:
            Created ticket dictionary (includes the Freshdesk `id`)
        """
        logger.info(f"Creating Freshdesk ticket: {payload.get('subject', '')[:60]}")
        return await self._make_request("POST", "tickets", json=payload)

    async def get_ticket(self, ticket_id: int) -> Dict[str, Any]:
        """
        Get ticket details by ID

        Args:
            ticket_id: Freshdesk ticket ID

        Returns:
            Ticket dictionary with full details
        """
        logger.info(f"Fetching ticket {ticket_id}")
        return await self._make_request("GET", f"tickets/{ticket_id}")

    async def fetch_ticket_conversations(
        self,
        ticket_id: int
    ) -> List[Dict[str, Any]]:
        """
        Fetch all conversations for a ticket with pagination handling

        Args:
            ticket_id: Freshdesk ticket ID

        Returns:
            List of all conversation dictionaries
        """
        all_conversations = []
        page = 1
        per_page = 30  # Freshdesk default page size

        while True:
            logger.info(f"Fetching conversations for ticket {ticket_id} (page {page})")
            conversations = await self._make_request(
                "GET",
                f"tickets/{ticket_id}/conversations",
                params={"per_page": per_page, "page": page}
            )

            if not conversations:
                break

            all_conversations.extend(conversations)

            # If we got less than per_page, we've reached the end
            if len(conversations) < per_page:
                break

            page += 1

        logger.info(f"Fetched total {len(all_conversations)} conversations for ticket {ticket_id}")
        return all_conversations

    async def update_ticket_fields(
        self,
        ticket_id: int,
        updates: Dict[str, Any]
    ) -> Dict[str, Any]:
        """
        Update ticket fields

        Args:
            ticket_id: Freshdesk ticket ID
            updates: Dictionary of field updates (e.g., {"status": 2, "priority": 3})

        Returns:
            Updated ticket dictionary
        """
        logger.info(f"Updating ticket {ticket_id} with {len(updates)} fields")
        return await self._make_request(
            "PUT",
            f"tickets/{ticket_id}",
            json=updates
        )

    async def add_note(
        self,
        ticket_id: int,
        note_body: str,
        private: bool = True
    ) -> Dict[str, Any]:
        """
        Add a note to a ticket

        Args:
            ticket_id: Freshdesk ticket ID
            note_body: Note content
            private: False makes the note visible to the requester

        Returns:
            Note conversation dictionary
        """
        logger.info(f"Adding {'private' if private else 'public'} note to ticket {ticket_id}")
        return await self._make_request(
            "POST",
            f"tickets/{ticket_id}/notes",
            json={"body": note_body, "private": private}
        )
