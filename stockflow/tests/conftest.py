"""
Shared fixtures for the stock-and-flow engine tests
"""

import pytest

from stockflow.model import Model


class DecayModel(Model):
    """
    Two-tank model: stock 'a' drains into stock 'b' at rate k,
    'b' leaks to the outside at rate leak.
    """

    def __init__(self):
        super().__init__(
            stock_ids=["a", "b"],
            flow_ids=["transfer", "leak"],
            variable_ids=["total"],
            parameter_ids=["k", "leak_rate"],
        )
        self.evaluate_calls = 0
        self.accumulate_calls = 0

    def evaluate(self, stocks, parameters, t):
        self.evaluate_calls += 1
        flows = {
            "transfer": parameters["k"] * stocks["a"],
            "leak": parameters["leak_rate"] * stocks["b"],
        }
        variables = {"total": stocks["a"] + stocks["b"]}
        return self.create_record(t, stocks, parameters, variables, flows)

    def accumulate_flows_per_stock(self, flows):
        self.accumulate_calls += 1
        return {
            "a": -flows["transfer"],
            "b": flows["transfer"] - flows["leak"],
        }


@pytest.fixture
def decay_model():
    return DecayModel()


@pytest.fixture
def decay_parameters():
    return {"k": 0.5, "leak_rate": 0.1}


@pytest.fixture
def decay_stocks():
    return {"a": 100.0, "b": 0.0}
