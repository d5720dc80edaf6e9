r"""
Run GoalBot on Discord.

Requires: DISCORD_BOT_TOKEN in .env
Create a bot at https://discord.com/developers/applications

Run: python scripts/run_discord_bot.py

Slash commands:
- /goal <goal> <duedate>        declare a goal
- /vote <goal_id> <vote>        vote on whether it was met
- /check <goal_id>              show the tally
- /evidence <goal_id> <text>    attach evidence
- /listgoals, /listevidence
"""

import os
import sys
from pathlib import Path

from dotenv import load_dotenv

_root = Path(__file__).resolve().parent.parent
if str(_root) not in sys.path:
    sys.path.insert(0, str(_root))
os.chdir(_root)

load_dotenv(_root / ".env", override=True)

if __name__ == "__main__":
    from goalbot.service.goalbot_service import main

    token = os.environ.get("DISCORD_BOT_TOKEN")
    if not token:
        print("ERROR: DISCORD_BOT_TOKEN not set.")
        print("1. Create app at https://discord.com/developers/applications")
        print("2. Bot tab -> Add Bot")
        print("3. Copy token, add to .env: DISCORD_BOT_TOKEN=your_token")
        sys.exit(1)

    print("=" * 60)
    print("GoalBot starting...")
    print("Use /goal, /vote, /check, /evidence, /listgoals in any channel")
    print("=" * 60)

    main()
