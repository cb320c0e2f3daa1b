"""
SiteChat - retrieval-augmented chat over a site's published articles.

Subsystems:
    sitechat.embeddings  - durable embedding queue, batch processor, monitor
    sitechat.providers   - embedding / generation vendor adapters
    sitechat.rag         - hybrid retrieval and grounded answering
"""

__version__ = "0.3.0"
