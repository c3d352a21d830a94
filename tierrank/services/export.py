"""
Rankings export.

Produces a CSV of the collection in rank order:

    Rank,Title,Media Type,Tier,Score,Year,Date Ranked
"""

import csv
import io

from tierrank.models.item import MediaType, RankedItem

CSV_HEADER = ["Rank", "Title", "Media Type", "Tier", "Score", "Year", "Date Ranked"]

MEDIA_TYPE_LABELS = {
    MediaType.MOVIE: "Movie",
    MediaType.TV: "TV",
}


def export_rankings_csv(items: list[RankedItem], scores: dict[str, float]) -> str:
    """
    Render ranked items as CSV text.

    Args:
        items: Items sorted by rank
        scores: Item id -> score, as returned by batch_score

    Returns:
        CSV text with a header row; quoting handled by the csv module
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)

    for item in items:
        writer.writerow(
            [
                item.rank,
                item.payload.title,
                MEDIA_TYPE_LABELS[item.media_type],
                item.tier.value,
                f"{scores[item.id]:.1f}",
                item.payload.year or "",
                item.added_at.strftime("%Y-%m-%d"),
            ]
        )

    return buffer.getvalue()
