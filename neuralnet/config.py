"""
config.py
~~~~~~~~~

Explicit network configuration, validated once and then built.

Example:
    >>> config = NetworkConfig.from_dict({
    ...     'layer_sizes': [2, 3, 1],
    ...     'eta': 1.0,
    ...     'activation': 'sigmoid',
    ... })
    >>> net = build_network(config)
    >>> net.architecture()
    [2, 3, 1]
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List

from neuralnet.activation import ActivationType
from neuralnet.cost import CostType
from neuralnet.exceptions import ConfigurationError
from neuralnet.initialization import InitializationType, initialization_for
from neuralnet.layers import LayerRole, layer_for
from neuralnet.network import GradientNormalization, Network
from neuralnet.regularization import RegularizationType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LayerSpec:
    """Role and neuron grid of one layer."""
    role: LayerRole
    height: int
    width: int = 1

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LayerSpec':
        try:
            return cls(
                role=LayerRole(data['role']),
                height=int(data['height']),
                width=int(data.get('width', 1))
            )
        except KeyError as e:
            raise ConfigurationError(f"layer spec is missing {e}") from e
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"invalid layer spec {data}: {e}") from e


@dataclass
class NetworkConfig:
    """
    Everything needed to build a network.

    Attributes:
        layers: Layer specs, input first
        eta: Learning rate
        lmbda: Regularization coefficient
        cost: Cost type
        activation: Activation type
        initialization: Initialization type
        regularization: Regularization type
        seed: Seed of the network's random generator
        normalization: Divisor of summed batch gradients
    """
    layers: List[LayerSpec] = field(default_factory=list)
    eta: float = 1.0
    lmbda: float = 0.0
    cost: CostType = CostType.QUADRATIC
    activation: ActivationType = ActivationType.SIGMOID
    initialization: InitializationType = InitializationType.DUMB
    regularization: RegularizationType = RegularizationType.NONE
    seed: int = 0
    normalization: GradientNormalization = GradientNormalization.DATASET

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'NetworkConfig':
        """
        Create a config from plain data, e.g. a JSON request body.

        Layers are given either as ``layers`` (a list of layer spec dicts)
        or as ``layer_sizes`` (input first, output last, hidden layers
        between). Strategy types are given by their string values.

        Raises:
            ConfigurationError: On unknown tags or malformed layers
        """
        if 'layers' in data:
            if not isinstance(data['layers'], list):
                raise ConfigurationError(
                    f"layers must be a list of layer specs, got {data['layers']!r}"
                )
            layers =[LayerSpec.from_dict(spec) for spec in data['layers']]
        elif 'layer_sizes' in data:
            layers = _layers_from_sizes(data['layer_sizes'])
        else:
            raise ConfigurationError("configuration needs 'layers' or 'layer_sizes'")

        try:
            return cls(
                layers=layers,
                eta=float(data.get('eta', 1.0)),
                lmbda=float(data.get('lambda', data.get('lmbda', 0.0))),
                cost=CostType(data.get('cost', CostType.QUADRATIC.value)),
                activation=ActivationType(
                    data.get('activation', ActivationType.SIGMOID.value)
                ),
                initialization=InitializationType(
                    data.get('initialization', InitializationType.DUMB.value)
                ),
                regularization=RegularizationType(
                    data.get('regularization', RegularizationType.NONE.value)
                ),
                seed=int(data.get('seed', 0)),
                normalization=GradientNormalization(
                    data.get('normalization', GradientNormalization.DATASET.value)
                )
            )
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"invalid configuration: {e}") from e

    def validate(self) -> None:
        """
        Check the layer sequence and hyperparameters.

        Raises:
            ConfigurationError: Describing the first problem found
        """
        if not self.layers:
            raise ConfigurationError("configuration has no layers")
        if self.layers[0].role is not LayerRole.INPUT:
            raise ConfigurationError("the first layer must be an input layer")
        if self.layers[-1].role is not LayerRole.OUTPUT:
            raise ConfigurationError("the last layer must be an output layer")
        for index, spec in enumerate(self.layers):
            if spec.height < 1 or spec.width < 1:
                raise ConfigurationError(
                    f"layer {index} has non-positive size "
                    f"{spec.width}x{spec.height}"
                )
            if index > 0 and spec.role is LayerRole.INPUT:
                raise ConfigurationError(
                    f"layer {index} is an input layer; only the first may be"
                )
            if spec.role is LayerRole.OUTPUT and index != len(self.layers) - 1:
                raise ConfigurationError(
                    f"output layer at position {index} is not the last layer"
                )
        if self.eta < 0:
            raise ConfigurationError(f"eta must be non-negative, got {self.eta}")
        if self.lmbda < 0:
            raise ConfigurationError(
                f"lambda must be non-negative, got {self.lmbda}"
            )


def _layers_from_sizes(sizes: Any) -> List[LayerSpec]:
    if not isinstance(sizes, list) or len(sizes) < 2:
        raise ConfigurationError(
            f"layer_sizes must list at least 2 layers, got {sizes}"
        )
    try:
        layers = [LayerSpec(LayerRole.INPUT, int(sizes[0]))]
        layers.extend(LayerSpec(LayerRole.FEEDFORWARD, int(size)) for size in sizes[1:-1])
        layers.append(LayerSpec(LayerRole.OUTPUT, int(sizes[-1])))
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"invalid layer_sizes {sizes}: {e}") from e
    return layers


def build_network(config: NetworkConfig) -> Network:
    """
    Validate a configuration and build an initialized network.

    Shape problems surface here, before any training can start.

    Raises:
        ConfigurationError: If the configuration or resulting shapes are invalid
        UnsupportedLayerOperationError: If the config contains a
            convolutional layer
    """
    config.validate()
    layers = [layer_for(spec.role, spec.height, spec.width) for spec in config.layers]
    net = Network(
        layers,
        eta=config.eta,
        lmbda=config.lmbda,
        cost=config.cost,
        activation=config.activation,
        regularization=config.regularization,
        seed=config.seed,
        normalization=config.normalization
    )
    net.initialize(initialization_for(config.initialization))
    net.refresh()
    logger.info(
        f"Built network {net.architecture()}: cost={config.cost.value}, "
        f"activation={config.activation.value}, "
        f"init={config.initialization.value}, "
        f"regularization={config.regularization.value}"
    )
    return net
