import typing
from abc import ABC, abstractmethod
from collections import Counter, OrderedDict
from pathlib import Path
from typing import Any, Dict, List, NamedTuple, Optional

import yaml
from eth_typing import ChecksumAddress

from rollout.constants import (
    ARTIFACTS_DIR,
    DEPLOYER_VARIABLE,
    LOCAL_CHAIN_IDS,
    VARIABLE_PREFIX,
)
from rollout.exceptions import BroadcastError, ConfigurationError
from rollout.models import ContractSpec
from rollout.registry import read_registry

CONTRACT_CONSTRUCTOR_PARAMETER_KEY = "constructor"


class ResolutionContext:
    """What is known at broadcast time: the deployer and the addresses deployed so far."""

    def __init__(
        self,
        deployer_address: Optional[ChecksumAddress] = None,
        addresses: Optional[Dict[str, ChecksumAddress]] = None,
    ):
        self.deployer_address = deployer_address
        self.addresses = addresses if addresses is not None else dict()


class VariableContext:
    def __init__(
        self,
        contract_names: List[str],
        contract_name: str,
        constants: typing.Dict[str, Any] = None,
    ):
        # only contracts deployed earlier in the sequence can be referenced
        self.contract_names = contract_names or list()
        self.contract_name = contract_name
        self.constants = constants or dict()


# Variables


class Variable(ABC):
    VARIABLE_PREFIX = VARIABLE_PREFIX

    @abstractmethod
    def resolve(self, context: ResolutionContext) -> Any:
        raise NotImplementedError

    @classmethod
    def is_variable(cls, param: Any) -> bool:
        """Returns True if the param is a variable."""
        result = isinstance(param, str) and param.startswith(cls.VARIABLE_PREFIX)
        return result

    def __repr__(self) -> str:
        return f"{self.VARIABLE_PREFIX}{self.label}"

    def __eq__(self, other: Any) -> bool:
        return type(self) is type(other) and self.label == other.label

    def __hash__(self) -> int:
        return hash((type(self).__name__, self.label))

    @property
    @abstractmethod
    def label(self) -> str:
        raise NotImplementedError


class DeployerAddress(Variable):
    @classmethod
    def is_deployer(cls, value: str) -> bool:
        """Returns True if the variable is a special deployer variable."""
        return value == DEPLOYER_VARIABLE

    @property
    def label(self) -> str:
        return DEPLOYER_VARIABLE

    def resolve(self, context: ResolutionContext) -> Any:
        if context.deployer_address is None:
            raise BroadcastError("Cannot resolve $deployer: no deployer account available.")
        return context.deployer_address


class Constant(Variable):
    def __init__(self, constant_name: str, context: VariableContext):
        try:
            self.constant_value = context.constants[constant_name]
        except KeyError:
            raise ConfigurationError(f"Constant '{constant_name}' not found in deployment file.")
        self.constant_name = constant_name

    @classmethod
    def is_constant(cls, value: str) -> bool:
        """Returns True if the variable is a deployment constant."""
        return value.isupper()

    @property
    def label(self) -> str:
        return self.constant_name

    def resolve(self, context: ResolutionContext) -> Any:
        return self.constant_value


class ContractReference(Variable):
    def __init__(self, contract_name: str, context: VariableContext):
        if contract_name not in context.contract_names:
            raise ConfigurationError(
                f"Contract {contract_name} referenced by {context.contract_name} "
                f"must be listed (and deployed) before it."
            )
        self.contract_name = contract_name

    @property
    def label(self) -> str:
        return self.contract_name

    def resolve(self, context: ResolutionContext) -> Any:
        """Resolves a contract address."""
        try:
            return context.addresses[self.contract_name]
        except KeyError:
            raise BroadcastError(f"Cannot resolve ${self.contract_name}: contract not deployed.")


def _variable_from_value(variable: Any, context: VariableContext) -> Variable:
    variable = variable[len(Variable.VARIABLE_PREFIX) :]
    if DeployerAddress.is_deployer(variable):
        return DeployerAddress()
    elif Constant.is_constant(variable):
        return Constant(variable, context)
    else:
        return ContractReference(variable, context)


def _process_raw_value(value: Any, variable_context: VariableContext) -> Any:
    if isinstance(value, list):
        return [_process_raw_value(v, variable_context) for v in value]

    if Variable.is_variable(value):
        value = _variable_from_value(value, variable_context)

    return value


def resolve_param(value: Any, context: ResolutionContext) -> Any:
    """Resolves a single parameter value or a list of parameter values."""
    if isinstance(value, (list, tuple)):
        return [resolve_param(v, context) for v in value]

    if isinstance(value, Variable):
        return value.resolve(context)

    return value  # literally a value


def resolve_arguments(arguments: typing.Sequence[Any], context: ResolutionContext) -> tuple:
    return tuple(resolve_param(argument, context) for argument in arguments)


def contains_variable(value: Any) -> bool:
    if isinstance(value, (list, tuple)):
        return any(contains_variable(v) for v in value)
    return isinstance(value, Variable)


def _get_contract_names(config: typing.Dict) -> List[str]:
    contract_names = list()
    for contract_info in config["contracts"]:
        if isinstance(contract_info, str):
            contract_names.append(contract_info)
        elif isinstance(contract_info, dict) and len(contract_info) == 1:
            contract_names.extend(list(contract_info.keys()))
        else:
            raise ConfigurationError("Malformed constructor parameters YAML.")

    return contract_names


def _spec_from_contract_info(
    contract_info: Any, position: int, contract_names: List[str], constants: Dict[str, Any]
) -> ContractSpec:
    if isinstance(contract_info, str):
        return ContractSpec(name=contract_info)

    contract_name = list(contract_info.keys())[0]  # only one entry
    contract_data = contract_info[contract_name] or dict()
    parameters = contract_data.get(CONTRACT_CONSTRUCTOR_PARAMETER_KEY) or OrderedDict()
    if not isinstance(parameters, dict):
        raise ConfigurationError(f"Malformed constructor parameter config for {contract_name}.")

    context = VariableContext(
        contract_names=contract_names[:position],
        contract_name=contract_name,
        constants=constants,
    )
    values = [_process_raw_value(value, context) for value in parameters.values()]
    return ContractSpec(
        name=contract_name,
        constructor_arguments=tuple(values),
        parameter_names=tuple(parameters.keys()),
    )


def specs_from_config(config: typing.Dict) -> List[ContractSpec]:
    """Builds the ordered contract specs described by a deployment parameters file."""
    contract_names = _get_contract_names(config)
    validate_contract_names(contract_names)
    constants = config.get("constants") or dict()
    return [
        _spec_from_contract_info(contract_info, position, contract_names, constants)
        for position, contract_info in enumerate(config["contracts"])
    ]


def validate_contract_names(contract_names: typing.Iterable[str]) -> None:
    """Contract names identify deployments and must be unique within a run."""
    duplicates = [name for name, count in Counter(contract_names).items() if count > 1]
    if duplicates:
        raise ConfigurationError(f"Duplicate contract name(s) in deployment: {', '.join(duplicates)}")


def validate_specs(specs: typing.Sequence[ContractSpec]) -> None:
    if not specs:
        raise ConfigurationError("No contracts to deploy.")
    validate_contract_names(spec.name for spec in specs)


class DeploymentPlan(NamedTuple):
    """A parsed deployment parameters file."""

    name: str
    chain_id: int
    registry_filepath: Path
    constants: Dict[str, Any]
    specs: List[ContractSpec]


def _load_yaml(filepath: Path) -> dict:
    """Loads a YAML file."""
    with open(filepath, "r") as file:
        return yaml.safe_load(file)


def get_registry_filepath(config: Dict) -> Path:
    """Returns the filepath of the registry file."""
    artifact_config = config.get("artifacts") or {}
    artifact_dir = Path(artifact_config.get("dir", ARTIFACTS_DIR))
    filename = artifact_config.get("filename")
    if not filename:
        raise ConfigurationError("artifact filename is not set in params file.")
    return artifact_dir / filename


def validate_config(config: Dict) -> None:
    print("Validating parameters YAML...")
    if not isinstance(config, dict):
        raise ConfigurationError("Malformed parameters YAML.")

    deployment = config.get("deployment")
    if not deployment:
        raise ConfigurationError("deployment is not set in params file.")

    if not deployment.get("chain_id"):
        raise ConfigurationError("chain_id is not set in params file.")

    if not config.get("contracts"):
        raise ConfigurationError("Constructor parameters file missing 'contracts' field.")


def plan_from_config(config: Dict, filepath: Optional[Path] = None) -> DeploymentPlan:
    validate_config(config)
    deployment = config["deployment"]
    default_name = filepath.stem if filepath else "deployment"
    return DeploymentPlan(
        name=deployment.get("name", default_name),
        chain_id=int(deployment["chain_id"]),
        registry_filepath=get_registry_filepath(config),
        constants=dict(config.get("constants") or {}),
        specs=specs_from_config(config),
    )


def load_plan(filepath: Path) -> DeploymentPlan:
    """Loads and validates a deployment parameters YAML file."""
    return plan_from_config(_load_yaml(filepath), filepath=Path(filepath))


def is_local_chain(chain_id: int) -> bool:
    return chain_id in LOCAL_CHAIN_IDS


def validate_network(plan: DeploymentPlan, chain_id: int) -> None:
    """
    Checks that the plan targets the connected chain and that the deployment
    has not already been published for that chain_id.
    """
    if plan.chain_id != chain_id and not is_local_chain(chain_id):
        raise ConfigurationError(
            f"chain_id in params file ({plan.chain_id}) does not match "
            f"chain_id of current network ({chain_id})."
        )

    if not plan.registry_filepath.exists():
        return

    registry_chain_ids = {entry.chain_id for entry in read_registry(plan.registry_filepath)}
    if chain_id in registry_chain_ids:
        raise ConfigurationError(f"Deployment is already published for chain_id {chain_id}.")
