# MIT License
# Copyright (c) 2025 Hashborn

"""
Fee arithmetic for account admission and remittance.

The engine never hard-codes the formula: it asks a FeeModel for
- required_balance(request): what the account must hold to be admitted
- fee_amount(request):       what settle_fee remits to the bootloader

FeeModel bills every unit of gas the request may consume (verification plus
call) at max_fee_per_gas, the conservative bound. CallGasOnlyFeeModel bills
only the call half of the packed limits.
"""
from ...protocol.types.request import PackedRequest


class FeeModel:
    name = "max-fee"

    def gas_limit(self, request: PackedRequest) -> int:
        return request.total_gas_limit

    def fee_amount(self, request: PackedRequest) -> int:
        return self.gas_limit(request) * request.max_fee_per_gas

    def required_balance(self, request: PackedRequest) -> int:
        return self.fee_amount(request) + request.value


class CallGasOnlyFeeModel(FeeModel):
    name = "call-gas-only"

    def gas_limit(self, request: PackedRequest) -> int:
        return request.call_gas_limit


FEE_MODELS = {
    FeeModel.name: FeeModel,
    CallGasOnlyFeeModel.name: CallGasOnlyFeeModel,
}


def get_fee_model(name: str = FeeModel.name) -> FeeModel:
    try:
        return FEE_MODELS[name]()
    except KeyError:
        raise ValueError(f"Unknown fee model: {name}")
