from ecoscan.orchestrator.contracts import Badge, WasteCategory

C = WasteCategory

# Seed catalog for stores that own their badge table (memory, sqlite).
# The hosted store ships its own rows.
DEFAULT_BADGES: list[Badge] = [
    Badge("first_scan", "First Steps", "Scan your first waste item", "🌱", scans_required=1),
    Badge("scan_10", "Sorting Habit", "Scan 10 items", "🔟", scans_required=10),
    Badge("scan_50", "Waste Wizard", "Scan 50 items", "🧙", scans_required=50),
    Badge("points_50", "Eco Starter", "Earn 50 eco points", "⭐", points_required=50),
    Badge("points_100", "Eco Warrior", "Earn 100 eco points", "🛡️", points_required=100),
    Badge("points_500", "Planet Protector", "Earn 500 eco points", "🌍", points_required=500),
    Badge("compost_champion", "Compost Champion", "Sort your first organic item", "🍂",
          category_required=C.WET_ORGANIC),
    Badge("recycling_ranger", "Recycling Ranger", "Sort your first recyclable", "♻️",
          category_required=C.DRY_RECYCLABLE),
    Badge("hazard_hero", "Hazard Hero", "Safely dispose of hazardous waste", "⚠️",
          category_required=C.HAZARDOUS),
    Badge("e_waste_expert", "E-Waste Expert", "Send electronics to the right place", "🔌",
          category_required=C.E_WASTE),
]
