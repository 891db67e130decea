"""HTTP client for the Nacos configuration API."""

from __future__ import annotations

from urllib.parse import urlencode

import requests

from opsplugs.nacos.config import NacosConfig
from opsplugs.nacos.models import ConfigListResponse

REQUEST_TIMEOUT = 10


class NacosError(Exception):
    """A request to the Nacos server failed."""


class NacosClient:
    """Reads configuration entries from one Nacos server."""

    def __init__(self, config: NacosConfig, session: requests.Session | None = None) -> None:
        self.config = config
        self.base_url = config.server_address()
        self._session = session or requests.Session()

    def _get(self, params: dict[str, str]) -> requests.Response:
        url = f"{self.base_url}/v1/cs/configs?{urlencode(sorted(params.items()))}"
        auth = None
        if self.config.username and self.config.password:
            auth = (self.config.username, self.config.password)
        try:
            return self._session.get(url, auth=auth, timeout=REQUEST_TIMEOUT)
        except requests.RequestException as exc:
            raise NacosError(f"请求失败: {exc}") from exc

    def get_config(self, data_id: str, group: str) -> str:
        """The content of one entry."""
        response = self._get(
            {"dataId": data_id, "group": group, "tenant": self.config.namespace}
        )
        body = response.content.decode("utf-8", "replace")
        if response.status_code != 200:
            raise NacosError(f"获取配置失败, 状态码: {response.status_code}, 响应: {body}")
        return body

    def _page(self, params: dict[str, str]) -> ConfigListResponse:
        response = self._get(params)
        try:
            return ConfigListResponse.from_dict(response.json())
        except ValueError as exc:
            raise NacosError(f"解析响应失败: {exc}") from exc

    def list_configs(self, page_no: int, page_size: int) -> ConfigListResponse:
        """One page of all entries in the namespace."""
        return self._page(
            {
                "dataId": "",
                "group": "",
                "tenant": self.config.namespace,
                "pageNo": str(page_no),
                "pageSize": str(page_size),
            }
        )

    def search_configs(
        self, data_id: str, group: str, page_no: int, page_size: int
    ) -> ConfigListResponse:
        """One page of entries fuzzily matching a data id and group."""
        return self._page(
            {
                "search": "blur",
                "dataId": data_id,
                "group": group,
                "tenant": self.config.namespace,
                "pageNo": str(page_no),
                "pageSize": str(page_size),
            }
        )