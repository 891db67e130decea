"""Elasticsearch keyword search, scroll, context and index mapping service."""