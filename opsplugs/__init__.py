"""Operations HTTP services: Elasticsearch search, script runner, public IP lookup and Nacos browsing."""

__version__ = "0.1.0"