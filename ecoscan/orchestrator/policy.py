from ecoscan.orchestrator.contracts import CategoryPolicy, WasteCategory

C = WasteCategory

# Bin policy: category -> where it goes, what to do, what it is worth
POLICIES: dict[WasteCategory, CategoryPolicy] = {
    C.WET_ORGANIC: CategoryPolicy(
        bin_color="green",
        bin_type="Biodegradable Bin",
        default_tip="Dispose in the green bin. Avoid plastic bags.",
        base_points=10,
    ),
    C.DRY_RECYCLABLE: CategoryPolicy(
        bin_color="blue",
        bin_type="Recyclable Bin",
        default_tip="Rinse and clean before disposal.",
        base_points=15,
    ),
    C.HAZARDOUS: CategoryPolicy(
        bin_color="red",
        bin_type="Hazardous Waste Bin",
        default_tip="Handle with care. Do not mix with regular waste.",
        base_points=25,
    ),
    C.E_WASTE: CategoryPolicy(
        bin_color="black",
        bin_type="E-Waste Collection Bin",
        default_tip="Remove batteries if possible. Take to certified collection centers.",
        base_points=30,
    ),
    C.REJECT_SANITARY: CategoryPolicy(
        bin_color="yellow",
        bin_type="Incineration / Sanitary Bin",
        default_tip="Wrap securely before disposal.",
        base_points=5,
    ),
    C.UNKNOWN: CategoryPolicy(
        bin_color="gray",
        bin_type="Unknown",
        default_tip="Please try again with a clearer image.",
        base_points=0,
    ),
}

# Display text shown next to the result card and in the bin guide
CATEGORY_LABELS: dict[WasteCategory, str] = {
    C.WET_ORGANIC: "Wet / Organic",
    C.DRY_RECYCLABLE: "Dry / Recyclable",
    C.HAZARDOUS: "Hazardous",
    C.E_WASTE: "E-Waste",
    C.REJECT_SANITARY: "Reject / Sanitary",
    C.UNKNOWN: "Unknown",
}

ECO_FACTS: dict[WasteCategory, str] = {
    C.WET_ORGANIC: "Composting organic waste reduces methane emissions and creates nutrient-rich soil!",
    C.DRY_RECYCLABLE: "Recycling one aluminum can saves enough energy to run a TV for 3 hours!",
    C.HAZARDOUS: "Proper disposal of hazardous waste prevents soil and water contamination.",
    C.E_WASTE: "E-waste contains valuable materials like gold, silver, and copper that can be recovered.",
    C.REJECT_SANITARY: "Sanitary waste must be incinerated to prevent disease transmission.",
    C.UNKNOWN: "When in doubt, check your local waste management guidelines!",
}


def policy_for(category) -> CategoryPolicy:
    """Total over the enum; raw strings outside it resolve to the unknown policy."""
    return POLICIES[WasteCategory.coerce(category)]


def all_policies() -> list[tuple[WasteCategory, CategoryPolicy]]:
    return [(c, POLICIES[c]) for c in WasteCategory]
