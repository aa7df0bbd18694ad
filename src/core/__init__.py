"""Core domain package for freqscope.

Core contains target resolution, paging, enrichment and aggregation logic
without any Telegram or HTTP-client code, keeping the business logic portable.
"""
