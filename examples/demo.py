#!/usr/bin/env python3
"""Demo: Using fitpick as a Python library.

This shows how to run searches programmatically, not just from the CLI.
"""

from fitpick.search import AntiDominance, OversizedCap, RawItem, SearchOptions, search


def main():
    # Units from both collections; categories may carry the 类 suffix
    items = [
        RawItem(62.5, "A", "planned", {"building": "3", "room": "401"}),
        RawItem(120.0, "A类", "planned", {"building": "7"}),
        RawItem(88.0, "B", "planned", {"building": "3", "room": "402"}),
        RawItem(45.3, "C", "planned"),
        RawItem(55.0, "A", "ready", {"community": "East Garden", "room": "101"}),
        RawItem(70.2, "B类", "ready", {"community": "East Garden"}),
        RawItem(40.0, "C", "ready", {"community": "West Park"}),
        RawItem(101.5, "C", "ready", {"community": "West Park"}),
        RawItem(30.0, "D", "ready"),  # never searched
    ]

    # 1. Plain search: every combination must hold at least one ready unit
    print("--- Top 5 for 260 ---")
    for r in search(items, target=260, must_include="ready", k=5):
        units = ", ".join(f"{p.size:g} {p.label}" for p in r.picks)
        print(f"  {r.sum:g} (gap {r.gap:g}): {units}")

    # 2. With business rules
    options = SearchOptions(
        min_size=40,
        anti_dominance=AntiDominance(dominant_threshold=100, others_threshold=60),
        oversized_cap=OversizedCap(provenance="planned", threshold=100),
    )
    print("\n--- Top 5 for 260 with rules ---")
    for r in search(items, target=260, must_include="ready", k=5, options=options):
        print(f"  {r.sum:g} ({r.item_count} units)")

    # 3. Ready units only
    print("\n--- Ready units only ---")
    ready_only = SearchOptions(sources=["ready"])
    results = search(items, target=200, must_include="ready", options=ready_only)
    print(f"  {len(results)} combination(s), best {results[0].sum:g}" if results else "  none")


if __name__ == "__main__":
    main()
