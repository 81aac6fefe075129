"""Colony visibility checker core package.

This package verifies that the deployed site exposes the metadata search
engines, social crawlers and PWA installers expect:
- markup: attribute extraction from raw HTML text
- urls: URL resolution and normalization rules
- freshness: age classification of the deployed activity data
- probe: bounded-time HTTP probes (Playwright request API)
- repository, manifest, deployed: the individual checks
- pipeline: the orchestrator that runs them in order
- reporter: text report and pass/fail summary
- logger: loguru configuration
- exceptions: exception hierarchy
"""

__version__ = "1.0.0"
