from leaderboard.main import run

run()
