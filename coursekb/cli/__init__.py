"""Command-line tools for the coursekb knowledge base.

- ``python -m coursekb.cli ingest`` -- ingest a UTF-8 text file
- ``python -m coursekb.cli search`` -- run a similarity search
- ``python -m coursekb.cli log``    -- store a graded completion
- ``python -m coursekb.cli stats``  -- show record counts

The CLI builds the same providers and services as the HTTP application,
from the same environment variables and ``.env`` file.
"""
