"""
Tap-to-segment surface masking.

Pipeline execution order (NEVER REORDER):
1. Box-resize the frame into a planar [0, 1] RGB tensor
2. Run the injected segmentation model
3. Decode detections from the channel-major output tensor
4. Confidence gate + Non-Maximum Suppression
5. Rasterize one binary mask per surviving detection
6. Select the mask under the tap point (or return all masks)
"""

__version__ = "0.1.0"
