import argparse
import json
from typing import Optional

from produce_quote.config import configure_logging, settings
from produce_quote.models import RequestScope, RetrievalRequest
from produce_quote.schemas import RetrievalResponse
from produce_quote.services.migration import migrate_data
from produce_quote.services.tracker import build_policy


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Produce market price jobs")
    parser.add_argument("command", choices=["fetch", "migrate"], help="Job command")
    parser.add_argument("--date", help="ROC trading date, e.g. 114/12/03 (defaults to today)")
    parser.add_argument("--type", default="all", help="Vegetable, Fruit or all")
    parser.add_argument("--use-cache", action="store_true", help="Serve the local backup only")
    args = parser.parse_args(argv)

    configure_logging()
    if args.command == "migrate":
        for line in migrate_data(settings.data_dir):
            print(line)
        return

    policy = build_policy()
    request = RetrievalRequest(
        requested_date=args.date or policy.converter.today(),
        scope=RequestScope.parse(args.type),
        force_cache=args.use_cache,
    )
    result = policy.retrieve(request)
    response = RetrievalResponse.from_result(result, policy.converter)
    print(json.dumps(response.model_dump(exclude_none=True), ensure_ascii=False, indent=2))


if __name__ == "__main__":
    main()
