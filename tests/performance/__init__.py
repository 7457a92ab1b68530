"""
Performance testing package (Locust-based).

Runs the same CRUD scenario as the ``crudload`` driver under Locust's
own runner, so the JSON and TOON backends can also be compared with
Locust's web UI, distributed workers and CSV statistics.

Key Concepts Demonstrated:
- One scenario implementation shared by two runners (``crudload`` and
  Locust) through a session-agnostic :class:`ScenarioRunner`
- ``LoadTestShape`` driven by the same stage schedule as the driver
- Tagged user classes so ``--tags json`` / ``--tags toon`` pick a backend
"""
