"""Quiz video jobs: registry, pipeline and retention.

- ``store``: in-memory job records
- ``orchestrator``: background pipeline per job
- ``timing``: scene durations from narration
- ``retention``: periodic cleanup of expired jobs
"""

__version__ = "1.0.0"
