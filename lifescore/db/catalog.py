"""Default catalog: missions, achievements and rewards shipped with the engine"""
from lifescore.models import (
    Achievement,
    AchievementRarity,
    ConditionType,
    Difficulty,
    Mission,
    MissionCategory,
    Recurrence,
    Reward,
    RewardType,
)

DEFAULT_MISSIONS = [
    # Safe driving
    Mission(
        id="safe-driver-7-day", title="7-Day Safe Driver Challenge",
        description="Complete 7 consecutive days of safe driving with no violations",
        category=MissionCategory.SAFE_DRIVING, difficulty=Difficulty.MEDIUM,
        xp_reward=75, lifescore_impact=15, coin_reward=50,
    ),
    Mission(
        id="speed-limit-master", title="Speed Limit Master",
        description="Maintain speed limits for 5 consecutive trips",
        category=MissionCategory.SAFE_DRIVING, difficulty=Difficulty.EASY,
        xp_reward=40, lifescore_impact=8, coin_reward=25,
    ),
    Mission(
        id="defensive-driving-expert", title="Defensive Driving Expert",
        description="Practice defensive driving techniques for 3 days",
        category=MissionCategory.SAFE_DRIVING, difficulty=Difficulty.HARD,
        xp_reward=100, lifescore_impact=20, required_level=3,
    ),
    Mission(
        id="seatbelt-check", title="Seatbelt Check",
        description="Buckle up before every trip today",
        category=MissionCategory.SAFE_DRIVING, difficulty=Difficulty.EASY,
        xp_reward=15, lifescore_impact=2, recurrence=Recurrence.DAILY,
    ),
    # Health
    Mission(
        id="daily-walk", title="Walk 30 Minutes",
        description="Take a 30 minute walk today",
        category=MissionCategory.HEALTH, difficulty=Difficulty.EASY,
        xp_reward=20, lifescore_impact=3, recurrence=Recurrence.DAILY,
    ),
    Mission(
        id="hydration-champion", title="Hydration Champion",
        description="Drink 8 glasses of water daily for 5 days",
        category=MissionCategory.HEALTH, difficulty=Difficulty.EASY,
        xp_reward=30, lifescore_impact=6, coin_reward=20,
    ),
    Mission(
        id="sleep-quality-master", title="Sleep Quality Master",
        description="Maintain 7-8 hours of quality sleep for 1 week",
        category=MissionCategory.HEALTH, difficulty=Difficulty.MEDIUM,
        xp_reward=65, lifescore_impact=13, recurrence=Recurrence.WEEKLY,
    ),
    Mission(
        id="stress-management", title="Stress Management",
        description="Practice stress-relief techniques for 5 days",
        category=MissionCategory.HEALTH, difficulty=Difficulty.HARD,
        xp_reward=90, lifescore_impact=18,
    ),
    # Financial guardian
    Mission(
        id="budget-review", title="Budget Review Master",
        description="Review and optimize your monthly budget",
        category=MissionCategory.FINANCIAL_GUARDIAN, difficulty=Difficulty.MEDIUM,
        xp_reward=80, lifescore_impact=16, coin_reward=50,
    ),
    Mission(
        id="emergency-fund-builder", title="Emergency Fund Builder",
        description="Set up an emergency fund savings plan",
        category=MissionCategory.FINANCIAL_GUARDIAN, difficulty=Difficulty.EXPERT,
        xp_reward=100, lifescore_impact=20, required_level=5,
    ),
    # Family protection
    Mission(
        id="family-safety-check", title="Family Safety Check",
        description="Conduct a home safety assessment",
        category=MissionCategory.FAMILY_PROTECTION, difficulty=Difficulty.MEDIUM,
        xp_reward=60, lifescore_impact=12, coin_reward=40,
    ),
    Mission(
        id="emergency-contacts", title="Emergency Contact Update",
        description="Update emergency contacts for all family members",
        category=MissionCategory.FAMILY_PROTECTION, difficulty=Difficulty.EASY,
        xp_reward=25, lifescore_impact=5,
    ),
]

DEFAULT_ACHIEVEMENTS = [
    Achievement(
        id="first-steps", name="First Steps", description="Complete your first mission",
        icon="footprints", condition_type=ConditionType.MISSIONS_COMPLETED, condition_value=1,
        xp_reward=50, coin_reward=25, lifescore_boost=5, rarity=AchievementRarity.COMMON,
    ),
    Achievement(
        id="streak-master", name="Streak Master", description="Maintain a 7-day streak",
        icon="fire", condition_type=ConditionType.STREAK_COUNT, condition_value=7,
        xp_reward=100, coin_reward=50, lifescore_boost=10, rarity=AchievementRarity.RARE,
    ),
    Achievement(
        id="lifescore-champion", name="LifeScore Champion", description="Reach 80 LifeScore",
        icon="trophy", condition_type=ConditionType.LIFESCORE_MILESTONE, condition_value=80,
        xp_reward=150, coin_reward=75, lifescore_boost=15, rarity=AchievementRarity.EPIC,
    ),
    Achievement(
        id="mission-marathon", name="Mission Marathon", description="Complete 25 missions",
        icon="medal", condition_type=ConditionType.MISSIONS_COMPLETED, condition_value=25,
        xp_reward=200, coin_reward=100, lifescore_boost=20, rarity=AchievementRarity.LEGENDARY,
    ),
    Achievement(
        id="xp-collector", name="XP Collector", description="Earn 1000 XP",
        icon="star", condition_type=ConditionType.XP_MILESTONE, condition_value=1000,
        xp_reward=120, coin_reward=60, lifescore_boost=12, rarity=AchievementRarity.RARE,
    ),
    Achievement(
        id="coin-hoarder", name="Coin Hoarder", description="Accumulate 500 coins",
        icon="coins", condition_type=ConditionType.COINS_EARNED, condition_value=500,
        xp_reward=80, coin_reward=40, lifescore_boost=8, rarity=AchievementRarity.COMMON,
    ),
    Achievement(
        id="active-explorer", name="Active Explorer", description="Be active for 30 days",
        icon="calendar", condition_type=ConditionType.DAYS_ACTIVE, condition_value=30,
        xp_reward=300, coin_reward=150, lifescore_boost=25, rarity=AchievementRarity.LEGENDARY,
    ),
    Achievement(
        id="scenario-master", name="Scenario Master", description="Complete 10 scenario simulations",
        icon="brain", condition_type=ConditionType.SCENARIOS_COMPLETED, condition_value=10,
        xp_reward=100, coin_reward=50, lifescore_boost=10, rarity=AchievementRarity.RARE,
    ),
    Achievement(
        id="reward-redeemer", name="Reward Redeemer", description="Redeem 5 rewards",
        icon="gift", condition_type=ConditionType.REWARDS_REDEEMED, condition_value=5,
        xp_reward=60, coin_reward=30, lifescore_boost=6, rarity=AchievementRarity.COMMON,
    ),
]

DEFAULT_REWARDS = [
    Reward(id="badge-bronze-achiever", title="Bronze Achiever", description="Complete your first mission",
           reward_type=RewardType.BADGE, coins_cost=0),
    Reward(id="badge-silver-streak", title="Silver Streak Master", description="Maintain a 7-day streak",
           reward_type=RewardType.BADGE, coins_cost=0),
    Reward(id="badge-gold-champion", title="Gold LifeScore Champion", description="Reach 80 LifeScore",
           reward_type=RewardType.BADGE, coins_cost=0),
    Reward(id="badge-platinum-legend", title="Platinum Legend", description="Complete 25 missions",
           reward_type=RewardType.BADGE, coins_cost=0),
    Reward(id="weekend-warrior", title="Weekend Warrior", description="2x coins for weekend missions",
           reward_type=RewardType.COIN_BOOST, coins_cost=100),
    Reward(id="fuel-discount", title="Fuel Discount", description="10% discount on fuel purchases",
           reward_type=RewardType.PARTNER_OFFER, coins_cost=200),
    Reward(id="gym-membership", title="Gym Membership", description="1 month free gym membership",
           reward_type=RewardType.PARTNER_OFFER, coins_cost=500),
    Reward(id="restaurant-voucher", title="Restaurant Voucher", description="QR 50 voucher for partner restaurants",
           reward_type=RewardType.PARTNER_OFFER, coins_cost=150),
    Reward(id="daily-check-in", title="Daily Check-in Bonus", description="Bonus coins for checking in every day",
           reward_type=RewardType.STREAK_BONUS, coins_cost=0),
]
