"""
Service Organization
====================
- ``station_service``: update cycles, config changes and live device access
- ``persistence``: snapshot and config files
- ``container``: wiring and lifecycle of all of the above
"""
