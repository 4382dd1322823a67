"""
CLI entry point for portfolio and token analytics.
"""

import sys
import json
import logging
import argparse
from typing import Any, List, Optional

from config import Config
from constants import Defaults, LimitsAndConstraints
from errors import AnalyticsError
from orchestrator import PortfolioAnalyticsOrchestrator
from store import InMemoryStore
from utils import to_jsonable

logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def setup_cli() -> argparse.ArgumentParser:
    """
    Sets up the command-line interface.

    Returns:
        argparse.ArgumentParser: The argument parser.
    """
    parser = argparse.ArgumentParser(
        description="Crypto portfolio valuation, risk and token analytics",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Portfolio returns, risk and allocation over 90 days
  %(prog)s portfolio --holdings ./portfolios.json --portfolio-id main --timeframe 90d

  # Token signals over the last week
  %(prog)s token bitcoin --timeframe 7d

  # Rebalancing recommendations at current prices
  %(prog)s rebalance --holdings ./portfolios.json --portfolio-id main
        """,
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable verbose logging"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    portfolio = subparsers.add_parser("portfolio", help="Analyze a portfolio")
    portfolio.add_argument(
        "--holdings", required=True, help="JSON file with portfolios and sentiment records"
    )
    portfolio.add_argument("--portfolio-id", required=True, help="Portfolio identifier")
    portfolio.add_argument(
        "--timeframe",
        "-t",
        choices=list(LimitsAndConstraints.PORTFOLIO_TIMEFRAMES),
        default=Defaults.PORTFOLIO_TIMEFRAME,
        help=f"History window (default: {Defaults.PORTFOLIO_TIMEFRAME})",
    )

    token = subparsers.add_parser("token", help="Analyze a single token")
    token.add_argument("token_id", help='Market-data token id (e.g., "bitcoin")')
    token.add_argument(
        "--holdings", help="Optional JSON file providing sentiment records"
    )
    token.add_argument(
        "--timeframe",
        "-t",
        choices=list(LimitsAndConstraints.TOKEN_TIMEFRAMES),
        default=Defaults.TOKEN_TIMEFRAME,
        help=f"History window (default: {Defaults.TOKEN_TIMEFRAME})",
    )

    rebalance = subparsers.add_parser("rebalance", help="Recommend rebalancing trades")
    rebalance.add_argument(
        "--holdings", required=True, help="JSON file with portfolios and target allocations"
    )
    rebalance.add_argument("--portfolio-id", required=True, help="Portfolio identifier")

    return parser


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2))


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    parser = setup_cli()
    args = parser.parse_args(argv)

    # Set logging level
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    orchestrator = None
    try:
        config = Config.from_env()
        store = InMemoryStore.from_json_file(args.holdings) if args.holdings else InMemoryStore()
        orchestrator = PortfolioAnalyticsOrchestrator(config, store)

        match args.command:
            case "portfolio":
                result = orchestrator.analyze_portfolio(args.portfolio_id, args.timeframe)
            case "token":
                result = orchestrator.analyze_token(args.token_id, args.timeframe)
            case "rebalance":
                result = orchestrator.recommend_rebalance(args.portfolio_id)
            case _:
                parser.error(f"Unknown command: {args.command}")

        _print_json(to_jsonable(result))
        return 0

    except KeyboardInterrupt:
        print("\n\nOperation cancelled by user", file=sys.stderr)
        return 1

    except AnalyticsError as e:
        logger.error(f"Analysis failed: {e.message}")
        _print_json(e.to_dict())
        return 1

    except (ValueError, OSError) as e:
        # Configuration or store file problems
        logger.error(f"Fatal error: {e}", exc_info=args.verbose)
        _print_json({"error": str(e)})
        return 1

    finally:
        if orchestrator is not None:
            orchestrator.close()


if __name__ == "__main__":
    sys.exit(main())
