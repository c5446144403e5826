"""hello-ci: a deployable "Hello World" service.

Two pieces live here:
 - the service process (``GET /`` answers ``Hello World``)
 - the deployment descriptor that tells the orchestrator how many replicas
   to run and how traffic reaches them

Replication, routing and restarts belong to the orchestrator. The service
itself is stateless and knows nothing about them.
"""

__version__ = "0.1.0"
