"""
insightgraph command line.

Runs engine operations against the configured SQLite store and prints the
result as JSON.

Usage:
    python scripts/graph_cli.py analytics proj_1              # Communities + centrality
    python scripts/graph_cli.py analytics proj_1 --refresh    # Bypass the cache
    python scripts/graph_cli.py clusters proj_1 --algorithm louvain --min-size 2
    python scripts/graph_cli.py related ins_1 --depth 3 --types SIMILAR_TO
    python scripts/graph_cli.py path proj_1 ins_1 ins_9
    python scripts/graph_cli.py search "coral bleaching" --type keyword
"""
import argparse
import json
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from insightgraph.core.config import get_settings
from insightgraph.core.errors import GraphEngineError
from insightgraph.engine import GraphAnalyticsEngine

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%H:%M:%S"
)
logger = logging.getLogger("graph_cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="insightgraph - knowledge graph analytics",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--db", type=Path, help="SQLite database (default: GRAPH_DB_PATH)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    analytics = subparsers.add_parser("analytics", help="Communities and centrality for a project")
    analytics.add_argument("project_id")
    analytics.add_argument("--refresh", action="store_true", help="Recompute even if cached")
    analytics.add_argument("--no-entities", action="store_true", help="Insights only")
    analytics.add_argument("--max-nodes", type=int, help="Node cap (default: GRAPH_MAX_NODES)")

    clusters = subparsers.add_parser("clusters", help="Insight clusters for a project")
    clusters.add_argument("project_id")
    clusters.add_argument("--min-size", type=int, default=3, help="Minimum cluster size (default: 3)")
    clusters.add_argument(
        "--algorithm", default="connected_components",
        choices=["connected_components", "louvain"],
    )
    clusters.add_argument("--refresh", action="store_true")

    related = subparsers.add_parser("related", help="Insights related to an insight")
    related.add_argument("insight_id")
    related.add_argument("--depth", type=int, default=2, help="Maximum hops (default: 2)")
    related.add_argument(
        "--types", nargs="+", default=["SIMILAR_TO", "RELATED_TO"],
        help="Relationship types to follow"
    )

    path = subparsers.add_parser("path", help="Shortest path between two nodes")
    path.add_argument("project_id")
    path.add_argument("from_id")
    path.add_argument("to_id")
    path.add_argument("--no-entities", action="store_true")

    search = subparsers.add_parser("search", help="Search insights")
    search.add_argument("query")
    search.add_argument("--type", dest="search_type", default="semantic",
                        choices=["semantic", "keyword", "graph"])
    search.add_argument("--project", dest="project_id")
    search.add_argument("-n", "--limit", type=int, help="Number of results")
    search.add_argument("--threshold", type=float, help="Minimum semantic similarity")

    return parser


def run(engine: GraphAnalyticsEngine, args: argparse.Namespace):
    """Dispatch a parsed command; returns a JSON-serializable result."""
    if args.command == "analytics":
        return engine.compute_analytics(
            args.project_id,
            include_entities=not args.no_entities,
            max_nodes=args.max_nodes,
            refresh=args.refresh,
        ).to_dict()
    if args.command == "clusters":
        return engine.find_clusters(
            args.project_id,
            min_size=args.min_size,
            algorithm=args.algorithm,
            refresh=args.refresh,
        ).to_dict()
    if args.command == "related":
        return engine.find_related(args.insight_id, depth=args.depth, types=args.types).to_dict()
    if args.command == "path":
        result = engine.shortest_path(
            args.project_id, args.from_id, args.to_id,
            include_entities=not args.no_entities,
        )
        return result.to_dict() if result else None
    if args.command == "search":
        hits = engine.search(
            args.query,
            search_type=args.search_type,
            project_id=args.project_id,
            limit=args.limit,
            threshold=args.threshold,
        )
        return [h.to_dict() for h in hits]
    raise ValueError(f"Unknown command: {args.command}")


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 2
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    settings = get_settings()
    if args.db:
        settings.store.db_path = args.db

    engine = GraphAnalyticsEngine.from_settings(settings)
    try:
        result = run(engine, args)
    except GraphEngineError as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1
    finally:
        engine.close()

    print(json.dumps(result, indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
