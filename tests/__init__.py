"""
Test suite for the crudload load driver.

This package contains:
- unit/: scenario, ramp, wire format and configuration logic with fakes
- integration/: real HTTP runs against the stub users services
- stubs/: Flask stand-ins for the JSON and TOON backends
- performance/: Locust entry point reusing the driver's scenario
"""
