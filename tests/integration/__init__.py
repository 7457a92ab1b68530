"""
End-to-end tests for the load driver.

These tests run the driver against the stub users services served on
an ephemeral port, demonstrating:
- Full CRUD sequences over real HTTP
- Request capture to assert on paths and media types
- Short staged runs through the whole driver
"""
