"""
api_server.py
~~~~~~~~~~~~~

Flask-based REST API server for building and training neural networks.

This module provides endpoints for:
- Creating networks from a JSON configuration
- Training networks on data sent with the request
- Predicting and evaluating with trained networks
- Persisting networks to/from the SQLite model store

Training runs synchronously inside the request.
"""

import os
import sys
import uuid
import logging
from typing import Any, Dict, Optional, Tuple

from flask import Flask, request, jsonify
from flask_cors import CORS

from neuralnet.config import NetworkConfig, build_network
from neuralnet.exceptions import (
    ConfigurationError,
    ShapeMismatchError,
    UnsupportedLayerOperationError
)
from neuralnet.matrix import Matrix
from neuralnet.network import Network
from neuralnet.persistence import (
    save_network,
    load_network,
    list_saved_networks,
    delete_network,
    delete_old_networks
)

# ============================================================================
# LOGGING SETUP
# ============================================================================

def configure_logging() -> None:
    """
    Set up logging based on environment.

    - In production: Show fewer logs (less noise) but keep important logs
    - In development: Show more detailed logs for debugging
    """
    log_level_str = os.getenv('LOG_LEVEL', 'INFO').upper()
    log_level = getattr(logging, log_level_str, logging.INFO)
    is_production = os.getenv('FLASK_ENV') == 'production'

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    # In production, silence the request log but keep our logs visible
    if is_production:
        logging.getLogger('werkzeug').setLevel(logging.WARNING)
        logging.getLogger('neuralnet').setLevel(logging.INFO)


configure_logging()
logger = logging.getLogger(__name__)

# ============================================================================
# FLASK APP SETUP
# ============================================================================

app = Flask(__name__)
CORS(app, resources={r"/*": {"origins": "*"}})
app.config['MODEL_DIR'] = os.getenv('MODEL_DIR', 'models')

# ============================================================================
# GLOBAL STATE
# ============================================================================

# Networks currently loaded in memory: {network_id: network_info}
active_networks: Dict[str, Dict[str, Any]] = {}


def _model_dir() -> str:
    return app.config['MODEL_DIR']


def _get_network_info(network_id: str) -> Optional[Dict[str, Any]]:
    """
    Return the in-memory entry for a network, loading it from the store
    on first use.
    """
    if network_id in active_networks:
        return active_networks[network_id]

    net = load_network(network_id, _model_dir())
    if net is None:
        return None

    active_networks[network_id] = {
        'network': net,
        'architecture': net.architecture(),
        'trained': True,
        'accuracy': None
    }
    logger.info(f"Loaded network {network_id} from the model store")
    return active_networks[network_id]


def _body() -> Optional[Dict[str, Any]]:
    """The JSON object in the request body, ``{}`` if absent, or None if not an object."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    return data if isinstance(data, dict) else None


def _is_vector(values: Any) -> bool:
    """Whether a JSON value is a flat list of numbers."""
    return isinstance(values, list) and all(
        isinstance(value, (int, float)) and not isinstance(value, bool)
        for value in values
    )


def _dataset_from_body(data: Dict[str, Any]) -> Tuple[Matrix, Matrix]:
    """
    Read ``data`` and ``expected`` lists from a request body.

    Raises:
        ValueError: If either is missing or empty, holds anything but
            lists of numbers, or the two differ in length
    """
    inputs = data.get('data')
    expected = data.get('expected')
    if not isinstance(inputs, list) or not isinstance(expected, list) or not inputs:
        raise ValueError("'data' and 'expected' must be non-empty lists")
    if len(inputs) != len(expected):
        raise ShapeMismatchError(
            f"{len(inputs)} examples but {len(expected)} expected outputs"
        )
    if not all(_is_vector(row) for row in inputs + expected):
        raise ValueError("every example and expected output must be a list of numbers")
    return Matrix(inputs), Matrix(expected)

# ============================================================================
# API ENDPOINTS
# ============================================================================

@app.route('/api/status', methods=['GET'])
def get_status():
    """Return server status and the number of networks in memory."""
    return jsonify({
        'status': 'online',
        'active_networks': len(active_networks)
    }), 200

@app.route('/api/networks', methods=['POST'])
def create_network():
    """
    Create a new neural network.

    Request body:
        {
            'layer_sizes': [2, 3, 1],   # or 'layers': [{'role': 'input', 'height': 2}, ...]
            'eta': 1.0,
            'lambda': 0.0,
            'cost': 'quadratic',
            'activation': 'sigmoid',
            'initialization': 'dumb',
            'regularization': 'none',
            'seed': 0
        }

    Returns:
        JSON with network_id, architecture, and status
    """
    data = _body()
    if data is None:
        return jsonify({'error': 'Request body must be a JSON object'}), 400

    try:
        config = NetworkConfig.from_dict(data)
        net = build_network(config)
    except (ConfigurationError, UnsupportedLayerOperationError) as e:
        logger.warning(f"Invalid network configuration requested: {e}")
        return jsonify({'error': f'Invalid configuration: {e}'}), 400
    except Exception as e:
        logger.exception(f"Error creating network: {e}")
        return jsonify({'error': f'Failed to create network: {str(e)}'}), 500

    network_id = str(uuid.uuid4())
    active_networks[network_id] = {
        'network': net,
        'architecture': net.architecture(),
        'trained': False,
        'accuracy': None
    }
    save_network(net, network_id, model_dir=_model_dir(), trained=False)

    logger.info(f"Created network {network_id} with architecture {net.architecture()}")

    return jsonify({
        'network_id': network_id,
        'architecture': net.architecture(),
        'status': 'created'
    }), 201

@app.route('/api/networks/<network_id>/train', methods=['POST'])
def train_network(network_id: str):
    """
    Train a network on the examples in the request body.

    Request body:
        {
            'data': [[0, 0], [0, 1], ...],
            'expected': [[0], [1], ...],
            'epochs': 5,            # optional
            'batch_size': 10,       # optional
            'regularize': false     # optional
        }

    Returns:
        JSON with loss before and after training and the final accuracy
    """
    try:
        info = _get_network_info(network_id)
    except Exception as e:
        logger.exception(f"Error loading network {network_id}: {e}")
        return jsonify({'error': 'Internal server error'}), 500
    if info is None:
        logger.warning(f"Training requested for non-existent network: {network_id}")
        return jsonify({'error': 'Network not found'}), 404

    data = _body()
    if data is None:
        return jsonify({'error': 'Request body must be a JSON object'}), 400
    epochs = data.get('epochs', 5)
    batch_size = data.get('batch_size', 10)
    regularize = bool(data.get('regularize', False))

    if not isinstance(epochs, int) or epochs < 1:
        return jsonify({'error': 'epochs must be a positive integer'}), 400
    if not isinstance(batch_size, int) or batch_size < 1:
        return jsonify({'error': 'batch_size must be a positive integer'}), 400

    try:
        inputs, expected = _dataset_from_body(data)
    except ValueError as e:
        logger.warning(f"Rejected training data for network {network_id}: {e}")
        return jsonify({'error': str(e)}), 400

    net: Network = info['network']
    try:
        loss_before = net.evaluate(inputs, expected)
        net.train(inputs, expected, epochs, batch_size, regularize=regularize)
        loss_after = net.evaluate(inputs, expected)
        accuracy = net.accuracy(inputs, expected)
    except ShapeMismatchError as e:
        logger.warning(f"Rejected training data for network {network_id}: {e}")
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        logger.exception(f"Error training network {network_id}: {e}")
        return jsonify({'error': f'Training failed: {str(e)}'}), 500

    info['trained'] = True
    info['accuracy'] = accuracy
    save_network(
        net, network_id, model_dir=_model_dir(), trained=True, accuracy=accuracy
    )

    logger.info(
        f"Trained network {network_id}: loss {loss_before:.4f} -> "
        f"{loss_after:.4f}, accuracy {accuracy:.2%}"
    )

    return jsonify({
        'network_id': network_id,
        'epochs': epochs,
        'batch_size': batch_size,
        'loss_before': loss_before,
        'loss_after': loss_after,
        'accuracy': accuracy,
        'status': 'trained'
    }), 200

@app.route('/api/networks/<network_id>/predict', methods=['POST'])
def predict(network_id: str):
    """
    Feed one input vector through a network.

    Request body:
        {'input': [0, 1]}

    Returns:
        JSON with the output activations
    """
    try:
        info = _get_network_info(network_id)
    except Exception as e:
        logger.exception(f"Error loading network {network_id}: {e}")
        return jsonify({'error': 'Internal server error'}), 500
    if info is None:
        logger.warning(f"Prediction requested for non-existent network: {network_id}")
        return jsonify({'error': 'Network not found'}), 404

    data = _body()
    if data is None:
        return jsonify({'error': 'Request body must be a JSON object'}), 400
    values = data.get('input')
    if not _is_vector(values):
        return jsonify({'error': "'input' must be a list of numbers"}), 400

    try:
        output = info['network'].feedforward(Matrix(values))
    except ShapeMismatchError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        logger.exception(f"Error predicting with network {network_id}: {e}")
        return jsonify({'error': f'Prediction failed: {str(e)}'}), 500

    return jsonify({
        'network_id': network_id,
        'output': output.to_list()
    }), 200

@app.route('/api/networks/<network_id>/evaluate', methods=['POST'])
def evaluate_network(network_id: str):
    """Return loss and accuracy of a network on the examples in the request body."""
    try:
        info = _get_network_info(network_id)
    except Exception as e:
        logger.exception(f"Error loading network {network_id}: {e}")
        return jsonify({'error': 'Internal server error'}), 500
    if info is None:
        logger.warning(f"Evaluation requested for non-existent network: {network_id}")
        return jsonify({'error': 'Network not found'}), 404

    data = _body()
    if data is None:
        return jsonify({'error': 'Request body must be a JSON object'}), 400
    try:
        inputs, expected = _dataset_from_body(data)
    except ValueError as e:
        return jsonify({'error': str(e)}), 400

    net: Network = info['network']
    try:
        loss = net.evaluate(inputs, expected)
        accuracy = net.accuracy(inputs, expected)
    except ShapeMismatchError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        logger.exception(f"Error evaluating network {network_id}: {e}")
        return jsonify({'error': f'Evaluation failed: {str(e)}'}), 500

    return jsonify({
        'network_id': network_id,
        'loss': loss,
        'accuracy': accuracy
    }), 200

@app.route('/api/networks', methods=['GET'])
def list_networks():
    """List all available networks (both in-memory and saved to disk)."""
    in_memory = [
        {
            'network_id': nid,
            'architecture': info['architecture'],
            'trained': info['trained'],
            'accuracy': info['accuracy'],
            'status': 'in_memory'
        }
        for nid, info in active_networks.items()
    ]

    # Saved networks, excluding duplicates already in memory
    saved_only = []
    for net in list_saved_networks(_model_dir()):
        if net['network_id'] not in active_networks:
            net['status'] = 'saved'
            saved_only.append(net)

    logger.debug(f"Listing networks: {len(in_memory)} in memory, {len(saved_only)} saved")

    return jsonify({'networks': in_memory + saved_only}), 200

@app.route('/api/networks/<network_id>', methods=['DELETE'])
def delete_network_endpoint(network_id: str):
    """Delete a network from both memory and disk."""
    deleted_from_memory = active_networks.pop(network_id, None) is not None
    deleted_from_disk = delete_network(network_id, _model_dir())

    if not deleted_from_memory and not deleted_from_disk:
        logger.warning(f"Delete attempted for non-existent network: {network_id}")
        return jsonify({'error': 'Network not found'}), 404

    logger.info(f"Deleted network {network_id}: memory={deleted_from_memory}, disk={deleted_from_disk}")

    return jsonify({
        'network_id': network_id,
        'deleted_from_memory': deleted_from_memory,
        'deleted_from_disk': deleted_from_disk
    }), 200

@app.route('/api/networks/cleanup', methods=['POST'])
def cleanup_old_networks_endpoint():
    """
    Delete saved networks older than the given number of days.

    Request body (optional):
        {'days': 2}  # defaults to 2
    """
    data = _body()
    if data is None:
        return jsonify({'error': 'Request body must be a JSON object'}), 400
    days = data.get('days', 2)

    if not isinstance(days, (int, float)) or isinstance(days, bool) or days < 0:
        return jsonify({'error': 'days must be a non-negative number'}), 400

    # Fractional days are compared as-is against the julianday age
    try:
        deleted_count = delete_old_networks(days=days, model_dir=_model_dir())
    except Exception as e:
        logger.exception(f"Error during manual cleanup: {e}")
        return jsonify({'error': 'Internal server error'}), 500
    if deleted_count == -1:
        return jsonify({'error': 'Error occurred during cleanup'}), 500

    logger.info(f"Manual cleanup: deleted {deleted_count} network(s) older than {days} day(s)")

    return jsonify({
        'deleted_count': deleted_count,
        'days': days,
        'message': f'Successfully deleted {deleted_count} network(s) older than {days} day(s)'
    }), 200

# ============================================================================
# SERVER STARTUP
# ============================================================================

if __name__ == '__main__':
    port = int(os.environ.get('PORT', 8000))
    is_production = os.getenv('FLASK_ENV') == 'production'

    logger.info(f"Starting server at http://localhost:{port}/")

    try:
        app.run(host='0.0.0.0', port=port, debug=not is_production, use_reloader=False)
    except OSError as e:
        if "Address already in use" in str(e):
            logger.error(f"Port {port} is already in use.")
            sys.exit(1)
        else:
            raise
