import sys

import cv2
import matplotlib.pyplot as plt

from dewarp_cli import DEFAULT_IMAGE
from fisheyedewarp import CacheManager, DewarpParams, FisheyeDewarp, ProjectionType


def display_comparison(image_path=DEFAULT_IMAGE, fov=180.0, pfov=120.0,
                       output_path='projection_comparison.png', show=True):
  """
  Display the original fisheye image next to its dewarped version under every projection type.
  """
  original = cv2.imread(image_path)
  if original is None:
    print(f"Error: Could not load {image_path}")
    return None

  cache_manager = CacheManager()
  results = []
  for projection_type in ProjectionType:
    params = DewarpParams(fov=fov, pfov=pfov, projection_type=projection_type)
    dewarped = FisheyeDewarp(params, cache_manager=cache_manager).dewarp(original)
    results.append((projection_type.value, dewarped))

  fig, axes = plt.subplots(1, len(results) + 1, figsize=(5 * (len(results) + 1), 5))

  axes[0].imshow(cv2.cvtColor(original, cv2.COLOR_BGR2RGB))
  axes[0].set_title('Original Fisheye Image', fontsize=14)
  axes[0].axis('off')

  for ax, (name, dewarped) in zip(axes[1:], results):
    ax.imshow(cv2.cvtColor(dewarped, cv2.COLOR_BGR2RGB))
    ax.set_title(f'{name} (fov {fov:.0f}°, pfov {pfov:.0f}°)', fontsize=12)
    ax.axis('off')

  plt.tight_layout()
  plt.savefig(output_path, dpi=150, bbox_inches='tight')
  if show:
    plt.show()
  plt.close(fig)

  print(f"Comparison saved as '{output_path}'")
  print(f"Original image shape: {original.shape}")
  print(f"Dewarped image shape: {results[0][1].shape}")
  return output_path


if __name__ == "__main__":
  display_comparison(sys.argv[1] if len(sys.argv) > 1 else DEFAULT_IMAGE)
