"""Wrapper for the Elasticsearch client with custom configuration."""

from typing import cast

from elastic_transport import ConnectionTimeout, TransportError
from elasticsearch import ApiError, Elasticsearch

from scrolldump.config.models import ConnectionStatus, ElasticsearchConfig


class ElasticsearchClient:
    """Wrapper for the Elasticsearch client with lazy initialization."""

    def __init__(
        self,
        url: str,
        verify_ssl: bool = True,
        request_timeout: int = 30,
    ):
        """
        Initialize client wrapper with configuration.

        Args:
            url: Cluster URL (e.g. http://localhost:9200)
            verify_ssl: Whether to verify TLS certificates
            request_timeout: Per-request timeout in seconds
        """
        self.url = url
        self.verify_ssl = verify_ssl
        self.request_timeout = request_timeout
        self._es: Elasticsearch | None = None

    @classmethod
    def from_config(cls, config: ElasticsearchConfig) -> "ElasticsearchClient":
        return cls(
            url=str(config.url),
            verify_ssl=config.verify_ssl,
            request_timeout=config.request_timeout,
        )

    def _init_es(self) -> None:
        """Create the underlying Elasticsearch client."""
        self._es = Elasticsearch(
            self.url,
            verify_certs=self.verify_ssl,
            ssl_show_warn=self.verify_ssl,
            request_timeout=self.request_timeout,
            # Backoff is owned by the tenacity policy in extraction.retry
            max_retries=0,
            retry_on_status=(),
            retry_on_timeout=False,
        )

    @property
    def es(self) -> Elasticsearch:
        """
        Lazy-load the client on first access.

        Returns:
            Initialized Elasticsearch instance
        """
        if self._es is None:
            self._init_es()
        return cast(Elasticsearch, self._es)

    def test_connection(self) -> ConnectionStatus:
        """
        Test connection to the cluster and return status.

        Returns:
            ConnectionStatus with cluster info or error message
        """
        try:
            info = self.es.info().body
            return ConnectionStatus(
                connected=True,
                url=self.url,
                cluster_name=info.get("cluster_name"),
                version=info.get("version", {}).get("number"),
            )
        except ApiError as e:
            error_msg = f"Cluster returned status {e.meta.status}: {e.message}"
            if e.meta.status == 401:
                error_msg = "Authentication failed - cluster requires credentials"
            return ConnectionStatus(connected=False, url=self.url, error_message=error_msg)
        except ConnectionTimeout:
            return ConnectionStatus(
                connected=False,
                url=self.url,
                error_message="Connection timeout - check network connectivity",
            )
        except TransportError as e:
            error_msg = f"Cannot reach cluster - check URL ({e})"
            return ConnectionStatus(connected=False, url=self.url, error_message=error_msg)

    def index_exists(self, index: str) -> bool:
        """Return True if ``index`` (or an alias/pattern) resolves on the cluster."""
        return bool(self.es.indices.exists(index=index))

    def close(self) -> None:
        if self._es is not None:
            self._es.close()
            self._es = None
