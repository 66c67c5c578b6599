from worldcup_sim.awards import pick_tournament_awards
from worldcup_sim.bracket import (
    ResolvedBracket,
    ResolvedMatch,
    knockout_state_from_bracket,
    resolve_bracket,
    scores_from_knockout_state,
    winner_info,
)
from worldcup_sim.playoffs import (
    PlayoffResolver,
    empty_playoff_selection,
    normalize_playoff_selection,
    resolve_playoff_team,
)
from worldcup_sim.simulation import (
    SimulationConfig,
    TournamentRun,
    auto_predict_groups_state,
    auto_predict_knockout_state,
    build_playoff_selection_for_mode,
    simulate_tournament,
)
from worldcup_sim.standings import (
    build_standings_by_group,
    compute_standings,
    create_fresh_group_state,
    generate_initial_matches,
    has_any_result,
    standings_frame,
)
from worldcup_sim.stats import build_tournament_stats, stats_frame
from worldcup_sim.third_place import resolve_third_place
