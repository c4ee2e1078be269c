#!/usr/bin/env python3
"""
Train a small network on XOR and save it.

Usage:
    python scripts/train_xor.py [output.json]

The script will:
1. Build a 2-2-1 sigmoid network with a fixed seed
2. Train it on the four XOR examples, printing the loss at checkpoints
3. Print the final predictions
4. Save the trained network as JSON (default: models/xor.json)
"""

import os
import sys

# Allow running from a source checkout without installing
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from neuralnet.config import LayerSpec, NetworkConfig, build_network
from neuralnet.datasets import xor
from neuralnet.layers import LayerRole
from neuralnet.persistence import save_to_file

EPOCHS = 2000
CHECKPOINT = 250


def main():
    """Build, train, report and save."""
    output_path = sys.argv[1] if len(sys.argv) > 1 else os.path.join('models', 'xor.json')

    print("=" * 60)
    print("XOR training demo")
    print("=" * 60)

    config = NetworkConfig(
        layers=[
            LayerSpec(LayerRole.INPUT, 2),
            LayerSpec(LayerRole.FEEDFORWARD, 2),
            LayerSpec(LayerRole.OUTPUT, 1),
        ],
        eta=1.0,
        seed=42,
    )
    net = build_network(config)
    data, expected = xor()

    print(f"\n📉 Initial loss: {net.evaluate(data, expected):.6f}")

    def report(progress):
        if progress['epoch'] % CHECKPOINT == 0:
            print(f"   - epoch {progress['epoch']:5d}: loss {progress['loss']:.6f}")

    net.train(data, expected, EPOCHS, batch_size=4, callback=report)

    print("\n🔍 Predictions:")
    for example, target in zip(data, expected):
        output = net.feedforward(example).get_scalar(0)
        print(f"   {example.to_list()} -> {output:.3f} (expected {target.get_scalar(0):.0f})")

    save_to_file(net, output_path)
    print(f"\n💾 Saved trained network to {output_path}")


if __name__ == '__main__':
    main()
