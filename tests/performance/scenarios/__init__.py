"""
Locust scenario user classes.

- :mod:`.json_crud` — CRUD sequence against the JSON backend
- :mod:`.toon_crud` — CRUD sequence against the TOON backend

Both inherit from :class:`~tests.performance.scenarios.base.CrudScenarioUser`,
so the request sequence and checks are identical and only the wire
format differs.
"""
