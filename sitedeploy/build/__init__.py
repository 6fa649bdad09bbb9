"""
Build pipeline of sitedeploy.

Script generation, job execution, ``.env`` compilation, notifications and the
PM2 log viewer. The HTTP layer talks to this package through
``SiteBuildService``.
"""
