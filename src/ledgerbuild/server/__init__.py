"""Server bundle build, transformation and routing generation."""

from ledgerbuild.server.builder import ServerBuild, build_server
from ledgerbuild.server.routing import write_router

__all__ = ["ServerBuild", "build_server", "write_router"]
