"""Provider team names mapped to the internal team ids used in predictions"""

TEAM_NAME_TO_ID = {
    "Arsenal FC": "arsenal",
    "Aston Villa FC": "aston-villa",
    "AFC Bournemouth": "bournemouth",
    "Brentford FC": "brentford",
    "Brighton & Hove Albion FC": "brighton",
    "Burnley FC": "burnley",
    "Chelsea FC": "chelsea",
    "Crystal Palace FC": "crystal-palace",
    "Everton FC": "everton",
    "Fulham FC": "fulham",
    "Leeds United FC": "leeds-united",
    "Liverpool FC": "liverpool",
    "Manchester City FC": "man-city",
    "Manchester United FC": "man-united",
    "Newcastle United FC": "newcastle",
    "Nottingham Forest FC": "nottingham",
    "Sunderland AFC": "sunderland",
    "Tottenham Hotspur FC": "tottenham",
    "West Ham United FC": "west-ham",
    "Wolverhampton Wanderers FC": "wolves",
    "Luton Town FC": "luton-town",
    "Sheffield United FC": "sheffield-united",
    "Ipswich Town FC": "ipswich-town",
    "Leicester City FC": "leicester-city",
}


def team_id_for(name):
    """Internal id for a provider team name, or None when unknown"""
    return TEAM_NAME_TO_ID.get(name)
