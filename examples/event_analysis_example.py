#!/usr/bin/env python3
"""
Example: fetch an event's markets and analyze them with two models, then
aggregate the answers.
"""
import argparse
import json
import logging

from predictos_sdk.agents import AnalysisAggregatorAgent, EventAnalysisAgent
from predictos_sdk.router import AnalysisRouter
from predictos_sdk.service import handle_get_events

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def main():
    parser = argparse.ArgumentParser(description="Analyze a Kalshi or Polymarket event")
    parser.add_argument("url", help="Event URL, e.g. https://polymarket.com/event/<slug>")
    parser.add_argument("--models", nargs="+", default=["grok-4", "gpt-5.2"])
    parser.add_argument("--aggregator", default="blockrun/claude-sonnet-4")
    args = parser.parse_args()

    status, events = handle_get_events({"url": args.url})
    if status != 200:
        logger.error(f"Could not load event: {events['error']}")
        return

    router = AnalysisRouter()
    analyst = EventAnalysisAgent(router)
    analyses = []
    try:
        for model in args.models:
            status, result = analyst.handle({
                "markets": events["markets"],
                "eventIdentifier": events["eventIdentifier"],
                "pmType": events["pmType"],
                "model": model,
            })
            if status != 200:
                logger.warning(f"{model} failed: {result['error']}")
                continue
            analyses.append({"agentId": model, "model": model, "analysis": result["data"]})

        if len(analyses) < 2:
            print(json.dumps(analyses, indent=2))
            return

        status, aggregated = AnalysisAggregatorAgent(router).handle({
            "analyses": analyses,
            "eventIdentifier": events["eventIdentifier"],
            "pmType": events["pmType"],
            "model": args.aggregator,
        })
        print(json.dumps(aggregated, indent=2))
    finally:
        router.close()


if __name__ == "__main__":
    main()
