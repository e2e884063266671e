import sys
import typing

from eth_utils import is_same_address

from rollout.models import ContractSpec

ZERO_ADDRESS = "0x" + "0" * 40


def _abort() -> None:
    print("Aborting deployment!")
    sys.exit(-1)


def _continue() -> None:
    """Asks the user to continue."""
    answer = input("Continue Y/N? ")
    if answer.lower().strip() == "n":
        _abort()


def _confirm_zero_address() -> None:
    answer = input("Zero Address detected for deployment parameter; Continue? Y/N? ")
    if answer.lower().strip() == "n":
        _abort()


def _is_zero_address(value: typing.Any) -> bool:
    return isinstance(value, str) and value.startswith("0x") and len(value) == 42 and is_same_address(
        value, ZERO_ADDRESS
    )


def _confirm_resolution(spec: ContractSpec) -> None:
    """Shows the constructor parameters of a single contract."""
    if not spec.constructor_arguments:
        print(f"\n(i) No constructor parameters for {spec.name}")
        return

    print(f"\nConstructor parameters for {spec.name}")
    names = spec.parameter_names or [f"[{i}]" for i in range(len(spec.constructor_arguments))]
    contains_zero_address = False
    for name, value in zip(names, spec.constructor_arguments):
        print(f"\t{name}={value!r}")
        if not contains_zero_address:
            contains_zero_address = _is_zero_address(value)
    if contains_zero_address:
        _confirm_zero_address()


def confirm_deployment(specs: typing.Sequence[ContractSpec]) -> None:
    """Asks the user to confirm the planned deployment before anything is broadcast."""
    for spec in specs:
        _confirm_resolution(spec)
    _continue()
