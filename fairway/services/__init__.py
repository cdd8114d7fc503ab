from fairway.services.pricing_service import (
    Pricing, calculate_fees, calculate_pricing, validate_amount, format_amount,
)
from fairway.services.capacity_service import (
    RegistrationStats, compute_stats, players_needed, players_in_payment,
    would_exceed_capacity,
)
from fairway.services.validation_service import validate_payload, validate_registration
from fairway.services.waitlist_service import waitlist_queue, select_promotions
from fairway.services.ranking_service import (
    LeaderboardStats, recalculate_positions, leaders_by_position, top_entries,
    format_position, format_score_to_par, format_leaderboard_line,
    export_leaderboard, compute_leaderboard_stats,
)
from fairway.services.storage_service import (
    RegistrationStorage, ScoringStorage, SqlAlchemyStorage, create_tables,
)
from fairway.services.payment_service import (
    PaymentGateway, PaymentResult, RefundResult, HttpPaymentGateway,
)
from fairway.services.notification_service import (
    Notifier, LoggingNotifier, TelegramNotifier, dispatch, render_message,
)
from fairway.services.qr_service import (
    make_checkin_token, generate_qr_png, validate_token_format, pass_payload, parse_pass,
)
from fairway.services.pairing_service import (
    Team, Pairing, auto_form_teams, generate_pairings, average_handicap,
)
from fairway.services.registration_service import RegistrationEvent, RegistrationService
from fairway.services.scoring_service import (
    LiveScoreUpdate, PositionChange, SubmitResult, ScoringStats, CheckInStats, Prize,
    TournamentResults, LiveScoringService, compute_scoring_stats, compute_check_in_stats,
    generate_results, export_scorecards, recompute_totals,
)

__all__ = [
    # pricing
    "Pricing", "calculate_fees", "calculate_pricing", "validate_amount", "format_amount",
    # capacity
    "RegistrationStats", "compute_stats", "players_needed", "players_in_payment",
    "would_exceed_capacity",
    # validation / waitlist
    "validate_payload", "validate_registration", "waitlist_queue", "select_promotions",
    # ranking
    "LeaderboardStats", "recalculate_positions", "leaders_by_position", "top_entries",
    "format_position", "format_score_to_par", "format_leaderboard_line",
    "export_leaderboard", "compute_leaderboard_stats",
    # storage
    "RegistrationStorage", "ScoringStorage", "SqlAlchemyStorage", "create_tables",
    # payments
    "PaymentGateway", "PaymentResult", "RefundResult", "HttpPaymentGateway",
    # notifications
    "Notifier", "LoggingNotifier", "TelegramNotifier", "dispatch", "render_message",
    # QR
    "make_checkin_token", "generate_qr_png", "validate_token_format", "pass_payload", "parse_pass",
    # teams / pairings
    "Team", "Pairing", "auto_form_teams", "generate_pairings", "average_handicap",
    # workflow
    "RegistrationEvent", "RegistrationService",
    # live scoring
    "LiveScoreUpdate", "PositionChange", "SubmitResult", "ScoringStats", "CheckInStats", "Prize",
    "TournamentResults", "LiveScoringService", "compute_scoring_stats", "compute_check_in_stats",
    "generate_results", "export_scorecards", "recompute_totals",
]
