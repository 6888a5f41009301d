# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""MCP Server Protocol Layer for Decision Links.

This module implements the MCP protocol layer with ZERO business logic.
All link, graph and impact logic is delegated to ArtifactGraphService.
"""

import argparse
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from mcp.server.fastmcp import Context, FastMCP
from mcp.server.session import ServerSession

from decision_links.config import Config
from decision_links.errors import DecisionLinksError
from decision_links.logging_setup import setup_logging
from decision_links.service import ArtifactGraphService
from decision_links.storage import JsonFileArtifactStore

logger = logging.getLogger(__name__)

SERVER_NAME = "decision-links"


class DecisionLinksMCPServer:
    """MCP Protocol Layer for Decision Links.

    Responsibilities:
    - Initialize MCP server and register tools
    - Translate MCP requests to service calls
    - Format service responses as JSON-compatible tool results
    - Report engine errors through the MCP context before re-raising

    Design Constraint: This layer contains ZERO business logic.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        service: Optional[ArtifactGraphService] = None,
        artifacts_dir: Optional[Path] = None,
    ):
        """Initialize MCP server.

        Args:
            config: Configuration object. If None, loads from default location.
            service: Service layer instance. If None, creates default service.
            artifacts_dir: Overrides config.artifacts_dir for the default store.
        """
        if config is None:
            config = Config()
        self.config = config

        if service is None:
            store = JsonFileArtifactStore(artifacts_dir or config.artifacts_dir)
            service = ArtifactGraphService(config=config, store=store)
        self.service = service

        self.mcp = FastMCP(name=SERVER_NAME)
        self._register_tools()

        logger.info("DecisionLinksMCPServer initialized")

    def _register_tools(self) -> None:
        """Register MCP tools with the server."""

        @self.mcp.tool()
        async def create_link(
            source_id: str,
            target_id: str,
            link_type: str,
            ctx: Context[ServerSession, None],
        ) -> Dict[str, Any]:
            """Create a bidirectional link between two artifacts.

            Args:
                source_id: Source artifact ID (e.g. RFC-0001)
                target_id: Target artifact ID (e.g. ADR-0001)
                link_type: implements, supersedes, relates-to, depends-on, blocks or enables
                ctx: MCP context for logging

            Returns:
                Dictionary with the created link and, for duplicates, a warning.
            """
            await ctx.info(f"Linking {source_id} -> {target_id} ({link_type})")
            try:
                result = self.service.create_link(source_id, target_id, link_type)
            except DecisionLinksError as e:
                await ctx.error(f"Failed to link {source_id} -> {target_id}: {e}")
                raise
            if result.warning:
                await ctx.warning(result.warning)
            return result.to_dict()

        @self.mcp.tool()
        async def remove_link(
            source_id: str,
            target_id: str,
            ctx: Context[ServerSession, None],
        ) -> Dict[str, Any]:
            """Remove the link between two artifacts from both sides."""
            await ctx.info(f"Removing link {source_id} -> {target_id}")
            try:
                self.service.remove_link(source_id, target_id)
            except DecisionLinksError as e:
                await ctx.error(f"Failed to remove link {source_id} -> {target_id}: {e}")
                raise
            return {"sourceId": source_id, "targetId": target_id, "removed": True}

        @self.mcp.tool()
        async def update_link_type(
            source_id: str,
            target_id: str,
            new_type: str,
            ctx: Context[ServerSession, None],
        ) -> Dict[str, Any]:
            """Change the type of an existing link."""
            await ctx.info(f"Re-typing link {source_id} -> {target_id} as {new_type}")
            try:
                link = self.service.update_link_type(source_id, target_id, new_type)
            except DecisionLinksError as e:
                await ctx.error(f"Failed to re-type {source_id} -> {target_id}: {e}")
                raise
            return link.to_dict()

        @self.mcp.tool()
        async def get_links(
            artifact_id: str,
            ctx: Context[ServerSession, None],
        ) -> Dict[str, Any]:
            """Get incoming and outgoing links of an artifact, with display rows."""
            await ctx.info(f"Reading links of {artifact_id}")
            try:
                response = self.service.get_links(artifact_id).to_dict()
                response["display"] = [
                    row.to_dict() for row in self.service.get_links_for_display(artifact_id)
                ]
            except DecisionLinksError as e:
                await ctx.error(f"Failed to read links of {artifact_id}: {e}")
                raise
            return response

        @self.mcp.tool()
        async def batch_link(
            source_id: str,
            target_ids: List[str],
            link_type: str,
            ctx: Context[ServerSession, None],
        ) -> Dict[str, Any]:
            """Link one source artifact to several targets.

            Every ID is checked before any link is written.
            """
            await ctx.info(f"Batch linking {source_id} -> {len(target_ids)} targets")
            try:
                results = self.service.batch_link(source_id, target_ids, link_type)
            except DecisionLinksError as e:
                await ctx.error(f"Batch link from {source_id} failed: {e}")
                raise
            return {"results": [result.to_dict() for result in results]}

        @self.mcp.tool()
        async def generate_graph(
            ctx: Context[ServerSession, None],
            graph_format: Optional[str] = None,
            root_id: Optional[str] = None,
            include_types: Optional[List[str]] = None,
        ) -> Dict[str, Any]:
            """Render the artifact graph as Mermaid or Graphviz DOT text.

            Args:
                ctx: MCP context for logging
                graph_format: "mermaid" or "dot" (default from configuration)
                root_id: Only render artifacts connected to this artifact
                include_types: Only render these artifact types

            Returns:
                Dictionary with format and graph text.
            """
            await ctx.info("Generating artifact graph")
            try:
                graph = self.service.generate_graph(graph_format, root_id, include_types)
            except DecisionLinksError as e:
                await ctx.error(f"Failed to generate graph: {e}")
                raise
            return {
                "format": graph_format or self.config.default_graph_format,
                "graph": graph,
            }

        @self.mcp.tool()
        async def detect_cycles(
            ctx: Context[ServerSession, None],
        ) -> Dict[str, Any]:
            """Detect circular dependencies with warning/critical severity."""
            await ctx.info("Detecting circular dependencies")
            try:
                cycles = self.service.detect_circular_dependencies()
            except DecisionLinksError as e:
                await ctx.error(f"Failed to detect cycles: {e}")
                raise
            return {"cycles": [cycle.to_dict() for cycle in cycles]}

        @self.mcp.tool()
        async def analyze_impact(
            artifact_id: str,
            ctx: Context[ServerSession, None],
        ) -> Dict[str, Any]:
            """Find direct and transitive dependents and the risk score of an artifact."""
            await ctx.info(f"Analyzing impact of {artifact_id}")
            try:
                report = self.service.analyze_impact(artifact_id)
            except DecisionLinksError as e:
                await ctx.error(f"Failed to analyze impact of {artifact_id}: {e}")
                raise
            return report.to_dict()

        @self.mcp.tool()
        async def deprecation_checklist(
            artifact_id: str,
            ctx: Context[ServerSession, None],
        ) -> Dict[str, Any]:
            """Generate prioritized migration tasks for deprecating an artifact."""
            await ctx.info(f"Generating deprecation checklist for {artifact_id}")
            try:
                checklist = self.service.generate_deprecation_checklist(artifact_id)
            except DecisionLinksError as e:
                await ctx.error(f"Failed to build deprecation checklist for {artifact_id}: {e}")
                raise
            return checklist.to_dict()

        logger.info(
            "MCP tools registered: create_link, remove_link, update_link_type, get_links, "
            "batch_link, generate_graph, detect_cycles, analyze_impact, deprecation_checklist"
        )

    def run(self, transport: str = "stdio") -> None:
        """Run the MCP server.

        Args:
            transport: Transport type to use. Options:
                - "stdio": Standard input/output (default)
                - "streamable-http": HTTP transport
                - "sse": Server-sent events transport
        """
        logger.info(f"Starting MCP server with {transport} transport")
        self.mcp.run(transport=transport)  # type: ignore[arg-type]


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Returns:
        Parsed arguments namespace.
    """
    parser = argparse.ArgumentParser(
        description="Decision Links MCP Server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file. Default: ./.decision_links.yml",
    )
    parser.add_argument(
        "--artifacts-dir",
        type=Path,
        default=None,
        help="Directory of the JSON artifact store. Default: artifacts_dir from configuration",
    )
    parser.add_argument(
        "--transport",
        type=str,
        choices=["stdio", "streamable-http", "sse"],
        default="stdio",
        help="Transport type for MCP server. Default: stdio",
    )
    parser.add_argument(
        "--log-dir",
        type=Path,
        default=None,
        help="Also write JSON logs to this directory. Default: console logging only",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Logging level. Default: INFO",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for MCP server."""
    args = parse_args(argv)
    log_level = getattr(logging, args.log_level)

    if args.log_dir is not None:
        log_file = setup_logging(log_dir=args.log_dir, log_level=log_level)
        logger.info(f"Writing JSON logs to {log_file}")
    else:
        logging.basicConfig(
            level=log_level,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )

    server = DecisionLinksMCPServer(config=Config(args.config), artifacts_dir=args.artifacts_dir)
    logger.info(f"Starting MCP server with config {server.config.config_path}")
    server.run(transport=args.transport)


if __name__ == "__main__":
    main()
