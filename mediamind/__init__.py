"""MediaMind research aggregation backend.

Accepts a research topic, fans out to archival, stock, news and newspaper
sources, and stores a deduplicated, ranked, relevance-filtered set of media
references per research job.
"""

__version__ = "0.4.0"
