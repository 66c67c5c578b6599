import pandas as pd
import numpy as np
import matplotlib.pyplot as plt
import seaborn as sns

from worldcup_sim import simulate_tournament, stats_frame
from worldcup_sim.reference import team_name

N_SIMS = 500
MODE = "favorites"
RANDOM_STATE = 2026
TOP_N = 16
OUTPUT_PATH = "champion_frequency.png"


def slot_label(slot):
    if slot is None:
        return "-"
    return f"{slot.name} ({slot.team_id})"


def award_label(stat):
    if stat is None:
        return "-"
    return f"{stat.team.name} ({stat.team.id}, tier {stat.tier}, {stat.stage_reached})"


def print_run(run):
    podium = run.podium
    print(f"\nMode: {run.mode}")
    print(f"Champion:    {slot_label(podium.champion)}")
    print(f"Runner-up:   {slot_label(podium.runner_up)}")
    print(f"Third place: {slot_label(podium.third_place)}")

    print("\nAwards:")
    print(f"  Revelation:     {award_label(run.awards.revelation)}")
    print(f"  Disappointment: {award_label(run.awards.disappointment)}")
    print(f"  Worst team:     {award_label(run.awards.worst)}")
    print(f"  Top scoring:    {award_label(run.awards.top_scoring)}")

    df_stats = stats_frame(run.stats).sort_values(["points", "goal_diff"], ascending=False)
    print("\nTop teams by points:")
    print(df_stats.head(8)[["team", "tier", "stage_reached", "played", "points", "goals_for", "goal_diff"]])


def main():
    seeds = np.random.SeedSequence(RANDOM_STATE).generate_state(N_SIMS)
    champions = []
    for i, seed in enumerate(seeds):
        run = simulate_tournament(MODE, random_state=int(seed))
        if i == 0:
            print_run(run)
        champion = run.podium.champion
        champions.append(champion.team_id if champion else None)

    freq = (
        pd.Series(champions, name="team")
        .dropna()
        .value_counts(normalize=True)
        .rename("share")
        .reset_index()
    )
    freq["name"] = freq["team"].apply(team_name)
    undecided = sum(c is None for c in champions)
    if undecided:
        print(f"\n{undecided} of {N_SIMS} runs hit a third-place combination missing from the cross-table")
    print(f"\nChampion frequency over {N_SIMS} simulations ({MODE}):")
    print(freq.head(TOP_N).round(3).to_string(index=False))

    fig, ax = plt.subplots(figsize=(10, 6))
    sns.barplot(data=freq.head(TOP_N), x="share", y="name", ax=ax, color="steelblue")
    ax.set_title(f"World Cup 2026 champions, {N_SIMS} {MODE} simulations")
    ax.set_xlabel("Share of simulations")
    ax.set_ylabel("")
    fig.tight_layout()
    fig.savefig(OUTPUT_PATH, dpi=150)
    plt.close(fig)
    print(f"\nSaved {OUTPUT_PATH}")


if __name__ == "__main__":
    main()
