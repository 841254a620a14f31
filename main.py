"""SocialPulse - online sentiment and complaint triage

Simple CLI for running an analysis, in-process or against a running server.
"""

import argparse
import asyncio
import sys

from socialpulse.agents.orchestrator import AnalysisOrchestrator
from socialpulse.client.consumer import AnalysisResults, AnalysisStreamClient, consume
from socialpulse.client.step_tracker import StepStatus, StepTracker
from socialpulse.errors import TransportFailure
from socialpulse.models.events import EventType, StreamEvent
from socialpulse.models.schemas import AnalysisOptions, AnalysisRequest
from socialpulse.services.logger import configure_logging

STATUS_MARKS = {
    StepStatus.PENDING: "[ ]",
    StepStatus.ACTIVE: "[~]",
    StepStatus.COMPLETED: "[+]",
}


def print_event(event: StreamEvent, tracker: StepTracker, results: AnalysisResults) -> None:
    if event.type is EventType.PROGRESS:
        for step in tracker.steps:
            if step.status is StepStatus.ACTIVE:
                print(f"{STATUS_MARKS[step.status]} {step.display}")
    elif event.type is EventType.ERROR:
        print(f"\n[!] Error ({event.data.get('step')}): {event.data.get('message', 'Unknown error')}")
    elif event.type is EventType.RESULT:
        print(f"  [+] {event.data.get('section')} ready")


def print_results(results: AnalysisResults) -> None:
    if results.sentiment:
        s = results.sentiment
        print(f"\n{'='*50}\nSENTIMENT\n{'='*50}")
        print(f"Positive {s.get('positive')}% / Neutral {s.get('neutral')}% / Negative {s.get('negative')}%")
        print(f"Mentions: {s.get('totalMentions')}  Trend: {s.get('trend')}")
        for point in s.get("painPoints", []):
            print(f"  - {point.get('title')} ({point.get('frequency')})")
        if s.get("keyInsights"):
            print(f"\n{s['keyInsights']}")

    if results.complaints is not None:
        print(f"\n{'='*50}\nCOMPLAINTS\n{'='*50}")
        for c in results.complaints:
            print(f"{c['id']}. [{c['severity']}/{c['funnelStage']}] {c['source']}: {c['text'][:100]}")
            if c.get("sourceUrl"):
                print(f"   {c['sourceUrl']}")
            if c.get("draftReply"):
                print(f"   Reply: {c['draftReply']}")

    if results.content:
        print(f"\n{'='*50}\nCONTENT\n{'='*50}")
        print(results.content.get("markdown", ""))

    if not results.done:
        print("\n[!] Stream ended before completion; results may be partial.")


async def run_analysis(request: AnalysisRequest, url: str | None = None) -> AnalysisResults:
    print(f"Topic: {request.topic}")
    print("-" * 50)
    tracker = StepTracker.for_options(request.options)
    if url:
        return await AnalysisStreamClient(url).run(request, tracker=tracker, on_event=print_event)
    orchestrator = AnalysisOrchestrator()
    return await consume(orchestrator.analyze(request), tracker, on_event=print_event)


def main():
    parser = argparse.ArgumentParser(description="SocialPulse sentiment and complaint analysis")
    parser.add_argument("--topic", "-t", required=True, help="Topic to analyze")
    parser.add_argument("--no-sentiment", action="store_true", help="Skip the sentiment section")
    parser.add_argument("--no-complaints", action="store_true", help="Skip complaint ranking")
    parser.add_argument("--no-content", action="store_true", help="Skip content drafting")
    parser.add_argument("--url", "-u", help="Server base URL (default: run in-process)")

    args = parser.parse_args()
    configure_logging(console_level="WARNING")
    options = AnalysisOptions(
        sentiment=not args.no_sentiment,
        complaints=not args.no_complaints,
        content=not args.no_content,
    )
    if not options.research:
        parser.error("select at least one analysis section")

    try:
        results = asyncio.run(run_analysis(AnalysisRequest(topic=args.topic, options=options), args.url))
    except TransportFailure as e:
        print(f"\n[!] Connection failed: {e}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        sys.exit(130)
    print_results(results)


if __name__ == "__main__":
    main()
