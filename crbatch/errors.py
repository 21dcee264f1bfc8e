"""Error types and failure analysis for the batch runner."""

import sys
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional


class BatchReadError(Exception):
    """Raised when the batch file exists but cannot be read."""


class BatchLineError(ValueError):
    """Raised when a batch-file line does not parse as flags."""


class SeriesFetchError(Exception):
    """Raised by the fetch routine when a series cannot be retrieved."""

    def __init__(self, address: str, message: str) -> None:
        super().__init__(f"{address}: {message}")
        self.address = address
        self.message = message


@dataclass
class FailurePattern:
    """Tracks one category of fetch failure."""
    category: str
    count: int = 0
    addresses: List[str] = field(default_factory=list)
    sample_messages: List[str] = field(default_factory=list)
    first_seen: Optional[datetime] = None
    last_seen: Optional[datetime] = None

    def record(self, address: Optional[str], message: str) -> None:
        self.count += 1
        timestamp = datetime.now()

        if self.first_seen is None:
            self.first_seen = timestamp
        self.last_seen = timestamp

        if address and address not in self.addresses:
            self.addresses.append(address)

        # Keep only the first 5 sample messages
        if len(self.sample_messages) < 5 and message not in self.sample_messages:
            self.sample_messages.append(message)


class FailureAnalyzer:
    """Categorizes fetch failures and suggests what to try next."""

    CATEGORIES = (
        "auth_required",
        "premium_only",
        "geo_restricted",
        "not_found",
        "rate_limit",
        "network",
        "unknown",
    )

    def __init__(self) -> None:
        self.patterns: Dict[str, FailurePattern] = {
            name: FailurePattern(name) for name in self.CATEGORIES
        }
        self.total_errors = 0

    def categorize(self, message: str) -> str:
        lowered = message.lower()

        # Order matters: more specific first
        if any(x in lowered for x in ["premium", "subscription", "upgrade your account"]):
            return "premium_only"
        if any(x in lowered for x in ["login", "log in", "password", "username", "401", "authentication"]):
            return "auth_required"
        if any(x in lowered for x in ["not available in your", "geo", "region"]):
            return "geo_restricted"
        if any(x in lowered for x in ["404", "not found", "unsupported url", "no video formats"]):
            return "not_found"
        if any(x in lowered for x in ["429", "403", "too many requests", "rate limit", "forbidden"]):
            return "rate_limit"
        if any(x in lowered for x in ["timed out", "timeout", "connection", "network", "name resolution", "ssl"]):
            return "network"
        return "unknown"

    def record(self, address: Optional[str], message: str) -> str:
        """Record a failure and return its category."""
        self.total_errors += 1
        category = self.categorize(message)
        self.patterns[category].record(address, message)
        return category

    def get_recommendations(self) -> List[str]:
        if self.total_errors == 0:
            return ["No errors detected."]

        recommendations = []
        counts = {name: pattern.count for name, pattern in self.patterns.items()}

        if counts["auth_required"]:
            recommendations.append(
                f"Authentication ({counts['auth_required']} errors): check --user/--pass "
                "or the CRBATCH_USER/CRBATCH_PASS environment variables."
            )
        if counts["premium_only"]:
            recommendations.append(
                f"Premium only ({counts['premium_only']} errors): these episodes need a premium account."
            )
        if counts["geo_restricted"]:
            recommendations.append(
                f"Geo-restriction ({counts['geo_restricted']} errors): the series is not offered in your region."
            )
        if counts["not_found"]:
            recommendations.append(
                f"Not found ({counts['not_found']} errors): check the series address in the batch file."
            )
        if counts["rate_limit"]:
            recommendations.append(
                f"Rate limiting ({counts['rate_limit']} errors): wait a while before rerunning."
            )
        if counts["network"]:
            recommendations.append(
                f"Network ({counts['network']} errors): check your connection and rerun."
            )
        if counts["unknown"]:
            recommendations.append(
                f"Unknown errors ({counts['unknown']}): rerun with --verbose for details."
            )
        return recommendations

    def print_summary(self, file=sys.stderr) -> None:
        if self.total_errors == 0:
            return

        print("\n" + "=" * 70, file=file)
        print("Failure Analysis", file=file)
        print("=" * 70, file=file)
        print(f"Total failed attempts: {self.total_errors}\n", file=file)

        sorted_patterns = sorted(
            self.patterns.values(), key=lambda pattern: pattern.count, reverse=True
        )
        for pattern in sorted_patterns:
            if pattern.count:
                print(f"{pattern.category.replace('_', ' ').title()}: {pattern.count} occurrences", file=file)
                print(f"  Affected addresses: {len(pattern.addresses)}", file=file)
                if pattern.sample_messages:
                    print(f"  Sample: {pattern.sample_messages[0][:80]}", file=file)

        print("-" * 70, file=file)
        for rec in self.get_recommendations():
            print(rec, file=file)
        print("=" * 70, file=file)
