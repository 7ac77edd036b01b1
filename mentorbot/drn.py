"""Statistics for opposed 2DRN checks, eg. "!drn 12 vs 14".

   A DRN is a six-sided die where a six counts as five and is rolled again,
   adding up for as long as sixes keep coming. An opposed check compares
   2DRN + attack against 2DRN + defence; the attacker wins by beating the
   defence by one or more.
"""

from dataclasses import dataclass, field
import math
import random
import re
from typing import Optional

import asciichartpy
from prettytable import PrettyTable


DRN_REGEX = re.compile(r"(?P<ATK>\d+)\s*vs?\s*(?P<DEF>\d+)")

# Rerolls allowed in a single DRN. Only reached with astronomically bad luck
# (or a rigged rng), but keeps the loop bounded.
MAX_REROLLS = 20
TRIALS = 1000
# Number of percentile samples plotted in the chart.
GRANULARITY = 30
# Lowest and highest results left out of the chart.
OUTLIERS = 10
WIN_CHANCES = (0.5, 0.75, 0.9, 0.95)


def drn(rng=random) -> int:
    total = 0
    for _ in range(MAX_REROLLS):
        roll = rng.randint(1, 6)
        if roll != 6:
            return total + roll
        total += 5
    return total


@dataclass
class DrnResult:
    atk: int
    defence: int
    wins: int = 0
    losses: int = 0
    values: list = field(default_factory=list)

    @property
    def rolls(self) -> int:
        return self.wins + self.losses

    @property
    def average(self) -> float:
        return sum(self.values) / self.rolls

    @property
    def win_ratio(self) -> float:
        return self.wins / self.rolls


def parse_matchup(text: str) -> Optional[tuple]:
    """Returns (attack, defence) from "<A> vs <B>", or None."""
    match = DRN_REGEX.search(text)
    if match is None:
        return None
    return int(match.group("ATK")), int(match.group("DEF"))


def simulate(atk: int, defence: int, trials=TRIALS, rng=random) -> DrnResult:
    result = DrnResult(atk, defence)
    for _ in range(trials):
        roll = (drn(rng) + drn(rng) + atk) - (drn(rng) + drn(rng) + defence)
        result.values.append(roll)
        if roll > 0:
            result.wins += 1
        else:
            result.losses += 1
    result.values.sort()
    return result


def attempts_for(chance: float, win_ratio: float):
    """How many checks in a row can be attempted while still succeeding at
       all of them with at least the given chance.
    """
    if win_ratio <= 0:
        return "-"
    if win_ratio >= 1:
        return "inf"
    return math.ceil(math.log(win_ratio) / math.log(chance))


def breakdown(values) -> list:
    """Samples the sorted results at GRANULARITY evenly spaced percentiles,
       clamped away from the outliers at both ends.
    """
    points = []
    for i in range(GRANULARITY):
        index = math.floor((i / GRANULARITY) * len(values))
        index = max(OUTLIERS, min(len(values) - OUTLIERS, index))
        index = min(index, len(values) - 1)
        points.append(values[index])
    return points


def render_table(title: str, rows) -> list:
    """Renders rows of (label, value) as a boxed text table."""
    table = PrettyTable(["Stat", "Value"], header=False, title=title)
    table.align["Stat"] = "l"
    table.align["Value"] = "r"
    for label, value in rows:
        table.add_row([label, value])
    return table.get_string().split("\n")


def render_chart(series, height: int) -> list:
    """Plots the series against a zero baseline, `height` lines tall."""
    zero = [0] * len(series)
    return asciichartpy.plot([zero, list(series)],
                             {"height": height}).split("\n")


def report(result: DrnResult) -> str:
    """Table of the simulation statistics with the result chart beside it,
       wrapped in a code block.
    """
    rows = [("Avg", f"{result.average:.2f}"),
            ("Win %", f"{result.win_ratio * 100:.2f}")]
    for chance in WIN_CHANCES:
        rows.append((f"{chance * 100:.0f}% win",
                     attempts_for(chance, result.win_ratio)))
    table = render_table(f"{result.atk} vs {result.defence}", rows)
    chart = render_chart(breakdown(result.values), len(table))
    output = ["```"]
    for i, line in enumerate(table):
        graph = chart[i] if i < len(chart) else ""
        output.append(f"{line} {graph}".rstrip())
    output.append("```")
    return "\n".join(output)
