"""
Circular economy model of a phone market
Example domain model: phones move between manufacturer, first- and
second-hand use, hibernation, breakage and landfill
"""

from typing import Dict

from stockflow.model import Model, Record

STOCK_IDS = (
    "manufacturer",
    "firstHand",
    "secondHand",
    "hibernating",
    "broken",
    "landfill",
)

FLOW_IDS = (
    "abandonFirstHand",
    "abandonSecondHand",
    "breakFirstHand",
    "breakSecondHand",
    "disposeBroken",
    "disposeHibernating",
    "naturalResources",
    "recycle",
    "refurbish",
    "repair",
    "reuse",
    "selling",
)

VARIABLE_IDS = (
    "firstHandDemand",
    "secondHandDemand",
    "numberOfItems",
)

PARAMETER_IDS = (
    "firstHandPreference",
    "globalDemand",
    "abandonRate",
    "breakRate",
    "repairRate",
    "reuseRate",
    "refurbishRate",
    "recycleRate",
)

# Fraction of broken and hibernating phones disposed per time unit
DISPOSE_RATE = 0.4


class CircularEconomyModel(Model):
    """Phone lifecycle with repair, reuse, refurbishment and recycling loops"""

    initial_stocks: Dict[str, float] = {stock_id: 0.0 for stock_id in STOCK_IDS}

    default_parameters: Dict[str, float] = {
        "firstHandPreference": 0.52,
        "globalDemand": 1000000.0,
        "abandonRate": 0.0,
        "breakRate": 0.25,
        "repairRate": 1.0,
        "reuseRate": 1.0,
        "refurbishRate": 1.0,
        "recycleRate": 0.0,
    }

    def __init__(self):
        super().__init__(STOCK_IDS, FLOW_IDS, VARIABLE_IDS, PARAMETER_IDS)

    def evaluate(
        self, stocks: Dict[str, float], parameters: Dict[str, float], t: float
    ) -> Record:
        first_hand = stocks["firstHand"]
        second_hand = stocks["secondHand"]
        hibernating = stocks["hibernating"]
        broken = stocks["broken"]

        abandon_rate = parameters["abandonRate"]
        break_rate = parameters["breakRate"]

        first_hand_demand = parameters["globalDemand"] * parameters["firstHandPreference"]
        second_hand_demand = parameters["globalDemand"] - first_hand_demand
        second_hand_gap = second_hand_demand - second_hand

        flows = {
            "abandonFirstHand": abandon_rate * first_hand,
            "abandonSecondHand": abandon_rate * second_hand,
            "breakFirstHand": break_rate * first_hand,
            "breakSecondHand": break_rate * second_hand,
            "disposeBroken": DISPOSE_RATE * broken,
            "disposeHibernating": DISPOSE_RATE * hibernating,
            "naturalResources": 0.0,
            "recycle": parameters["recycleRate"] * broken,
            "refurbish": parameters["refurbishRate"] * hibernating,
            "repair": min(second_hand_gap, broken) * parameters["repairRate"],
            "reuse": min(second_hand_gap, hibernating) * parameters["reuseRate"],
            "selling": first_hand_demand - first_hand,
        }
        variables = {
            "firstHandDemand": first_hand_demand,
            "secondHandDemand": second_hand_demand,
            "numberOfItems": first_hand + second_hand,
        }
        return self.create_record(t, stocks, parameters, variables, flows)

    def accumulate_flows_per_stock(self, flows: Dict[str, float]) -> Dict[str, float]:
        return {
            "manufacturer": flows["naturalResources"] + flows["recycle"] - flows["selling"],
            "firstHand": flows["selling"]
            + flows["refurbish"]
            - (flows["abandonFirstHand"] + flows["breakFirstHand"]),
            "secondHand": flows["repair"]
            + flows["reuse"]
            - (flows["abandonSecondHand"] + flows["breakSecondHand"]),
            "hibernating": flows["abandonFirstHand"]
            + flows["abandonSecondHand"]
            - (flows["disposeHibernating"] + flows["refurbish"]),
            "broken": flows["breakFirstHand"]
            + flows["breakSecondHand"]
            - (flows["disposeBroken"] + flows["repair"]),
            "landfill": flows["disposeHibernating"] + flows["disposeBroken"],
        }
