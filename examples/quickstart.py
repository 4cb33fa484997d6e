"""culturesim Quickstart: your first cultural-evolution simulation

Runs conformist transmission in one population of 1000 agents and prints the
frequency of trait A every ten generations. With a slight initial majority
and strong conformity, A should sweep to fixation within a few dozen
generations.

Run with:
    python examples/quickstart.py
"""

from culturesim.core.random_source import RandomSource
from culturesim.rules import RuleRegistry
from culturesim.simulation.runner import simulate


def main():
    # 55% of agents start with A; D = 1 is perfect conformity
    rule = RuleRegistry.create("conformist_bias", D=1.0, p0=0.55)
    rng = RandomSource(42)

    print(f"Model: {rule!r}")
    print()

    summaries = simulate(rule, n=1000, t_max=50, rng=rng)

    print(f"{'Generation':<12} {'p(A)':<8}")
    print("-" * 20)
    for summary in summaries:
        if summary.generation == 1 or summary.generation % 10 == 0:
            print(f"{summary.generation:<12} {summary.frequencies['A']:<8.3f}")

    final = summaries[-1].frequencies["A"]
    print()
    print("A went to fixation" if final == 1.0 else f"Final frequency of A: {final:.3f}")


if __name__ == "__main__":
    main()
