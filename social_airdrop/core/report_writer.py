"""
Eligibility Report Writer

Flattens eligibility records into the airdrop CSV.
"""

import csv
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Union

from ..exceptions import ReportWriteError
from .structures import EligibilityRecord

logger = logging.getLogger(__name__)

REPORT_COLUMNS = [
    "Username",
    "Display Name",
    "FID",
    "Wallet Address",
    "Reason",
    "Follower Count",
]


def to_row(record: EligibilityRecord) -> Dict[str, object]:
    user = record.user
    return {
        "Username": user.username,
        "Display Name": user.display_name,
        "FID": user.fid,
        "Wallet Address": record.wallet_address,
        "Reason": record.reason.value,
        "Follower Count": user.follower_count,
    }


class ReportWriter:
    """Writes the eligible users to a CSV file; failures are fatal."""

    def write(self, records: Iterable[EligibilityRecord], path: Union[str, Path]) -> int:
        destination = Path(path)
        rows: List[Dict[str, object]] = [to_row(record) for record in records]
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            with destination.open("w", newline="", encoding="utf-8") as handle:
                writer = csv.DictWriter(handle, fieldnames=REPORT_COLUMNS)
                writer.writeheader()
                writer.writerows(rows)
        except (OSError, csv.Error) as e:
            raise ReportWriteError(destination, e) from e

        logger.info(f"CSV file created: {destination} ({len(rows)} records)")
        return len(rows)
