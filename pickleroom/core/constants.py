"""Global constants for the pickleroom application."""

# Collection names
GAMES_COLLECTION = "games"
MATCHES_COLLECTION = "matches"
USERS_COLLECTION = "users"
UNREGISTERED_PLAYERS_COLLECTION = "unregisteredPlayers"

# Game formats
FORMAT_ONE_VS_ONE = "one-vs-one"
FORMAT_TWO_VS_TWO = "two-vs-two"
FORMAT_ROUND_ROBIN = "round-robin"
FORMAT_QUICK_KNOCKOUT = "quick-knockout"
FORMAT_PICKLE = "pickle"

# Game lifecycle
GAME_PENDING = "pending"
GAME_LIVE = "live"
GAME_COMPLETED = "completed"

# Match lifecycle
MATCH_PENDING = "pending"
MATCH_LIVE = "live"
MATCH_FINISHED = "finished"

# Bracket roles
BRACKET_WINNERS = "winners"
BRACKET_LOSERS = "losers"
BRACKET_SEMIFINAL = "semifinal"
BRACKET_BRONZE = "bronze"
BRACKET_FINAL = "final"

# Medals, in award order
GOLD = "gold"
SILVER = "silver"
BRONZE = "bronze"
MEDALS = (GOLD, SILVER, BRONZE)

# Walkovers
BYE_LETTER = "BYE"
BYE_NAME = "Bye"
BYE_WINNER_SCORE = 21
BYE_LOSER_SCORE = 0

# Match-win credit
MATCH_WIN_TEAM_POINTS = 2
MATCH_WIN_INDIVIDUAL_POINTS = 1

# Tournament point table
POINT_TABLE = {
    GOLD: {"individual": 3, "team": 4},
    SILVER: {"individual": 1, "team": 2},
    BRONZE: {"individual": 1, "team": 1},
}
PARTICIPATION_POINTS = 0.5

# Team letters handed out by the team assignment helper
TEAM_LETTERS = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"

# Recent games listing
RECENT_GAMES_LIMIT = 10
