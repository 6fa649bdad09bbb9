"""sitedeploy.

This package builds and deploys the web "sites" hosted on a single machine.
It stores site metadata, generates shell build scripts, runs them in the
background and records every build.

High-level architecture
-----------------------

- ``sitedeploy.core``:

  - Logging (including the dedicated build log channel) and optional Logfire monitoring.
  - Value encryption for stored environment variables.
  - SQLModel entities and async repositories for sites, build histories,
    environment variables, build groups, parameters and users.

- ``sitedeploy.build``:

  - Build script generation, site artifact storage and ``.env`` compilation.
  - The build job state machine (``queued -> processing -> success | failed``),
    the async job queue and completion notifications.
  - Site destruction and the PM2 log parser.

- ``sitedeploy.server``:

  - FastAPI application exposing the JSON API.

Typical workflow
----------------

1. Create a site; its build script and initial log are written to storage.
2. Queue a build; a ``queued`` build history row is created and a job is dispatched.
3. The worker runs the script, writes the execution log and marks the history
   ``success`` or ``failed``.
4. Listeners send notifications for the finished build.
"""

__version__ = "0.1.0"
