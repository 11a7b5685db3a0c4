import queue
import sys
import threading
import tkinter as tk
from tkinter import ttk, messagebox
from typing import Optional

import cv2
import numpy as np
from PIL import Image, ImageTk

from dewarp_cli import DEFAULT_IMAGE, build_output_path
from fisheyedewarp import CacheManager, DewarpParams, FisheyeDewarp, ProjectionType

DISPLAY_SIZE = 700

PRESETS = {
  'wide': (180.0, 150.0),
  'standard': (180.0, 120.0),
  'narrow': (180.0, 60.0)
}


def to_photo_image(img: np.ndarray, max_size: int = DISPLAY_SIZE) -> ImageTk.PhotoImage:
  """Resize a BGR image to fit max_size and convert it for a tkinter label."""
  h, w = img.shape[:2]
  if w > h:
    new_w, new_h = max_size, int(h * max_size / w)
  else:
    new_w, new_h = int(w * max_size / h), max_size

  img_resized = cv2.resize(img, (max(new_w, 1), max(new_h, 1)))
  img_rgb = cv2.cvtColor(img_resized, cv2.COLOR_BGR2RGB)
  return ImageTk.PhotoImage(Image.fromarray(img_rgb))


class DewarpUI:
  def __init__(self, root: tk.Tk, image_path: str = DEFAULT_IMAGE) -> None:
    self.root = root
    self.root.title("Fisheye Dewarp Tool")
    self.root.geometry("1700x850")
    self.image_path = image_path

    self.fisheye_img = cv2.imread(image_path)
    if self.fisheye_img is None:
      messagebox.showerror("Error", f"Could not load {image_path}")
      return

    # Maps are shared between the dewarpers built for each parameter change
    self.cache_manager = CacheManager(max_memory_mb=256.0)
    self.last_dewarped_img: Optional[np.ndarray] = None
    self.last_params: Optional[DewarpParams] = None

    self.params = {
      'fov': tk.DoubleVar(value=180.0),
      'pfov': tk.DoubleVar(value=120.0),
      'projection_type': tk.StringVar(value=ProjectionType.LINEAR.value)
    }

    self.processing_queue = queue.Queue()
    self.result_queue = queue.Queue()
    self.processing_thread = None
    self.update_pending = False

    self.setup_ui()
    self.update_images()

    self.root.after(100, self.check_results)

  def setup_ui(self) -> None:
    main_frame = ttk.Frame(self.root, padding="10")
    main_frame.grid(row=0, column=0, sticky=(tk.W, tk.E, tk.N, tk.S))

    self.root.columnconfigure(0, weight=1)
    self.root.rowconfigure(0, weight=1)
    main_frame.columnconfigure(1, weight=1)
    main_frame.rowconfigure(0, weight=1)

    control_frame = ttk.LabelFrame(main_frame, text="Dewarp Parameters", padding="10")
    control_frame.grid(row=0, column=0, sticky=(tk.W, tk.N, tk.S), padx=(0, 10))

    image_frame = ttk.Frame(main_frame)
    image_frame.grid(row=0, column=1, sticky=(tk.W, tk.E, tk.N, tk.S))

    self.setup_controls(control_frame)
    self.setup_image_display(image_frame)

  def _add_angle_control(self, parent: ttk.Widget, row: int, label: str, key: str,
                         from_: float, to: float) -> int:
    ttk.Label(parent, text=label).grid(row=row, column=0, sticky=tk.W, padx=(10, 5))
    scale = ttk.Scale(parent, from_=from_, to=to, variable=self.params[key], orient=tk.HORIZONTAL, length=200)
    scale.grid(row=row, column=1, sticky=(tk.W, tk.E), pady=2)
    scale.bind('<ButtonRelease-1>', self.on_param_change)
    row += 1

    entry = ttk.Entry(parent, textvariable=self.params[key], width=10)
    entry.grid(row=row, column=1, sticky=tk.W, pady=2)
    entry.bind('<Return>', self.on_param_change)
    return row + 1

  def setup_controls(self, parent: ttk.Widget) -> None:
    row = 0

    ttk.Label(parent, text="Field of View", font=('Arial', 10, 'bold')).grid(row=row, column=0, columnspan=2, sticky=tk.W, pady=(0, 5))
    row += 1

    row = self._add_angle_control(parent, row, "Fisheye FOV (°):", 'fov', 1, 180)
    row = self._add_angle_control(parent, row, "Perspective FOV (°):", 'pfov', 1, 179)

    ttk.Separator(parent, orient='horizontal').grid(row=row, column=0, columnspan=2, sticky=(tk.W, tk.E), pady=10)
    row += 1

    ttk.Label(parent, text="Projection Type:").grid(row=row, column=0, sticky=tk.W, padx=(10, 5))
    projection_box = ttk.Combobox(parent, textvariable=self.params['projection_type'],
                                  values=[p.value for p in ProjectionType], state='readonly', width=14)
    projection_box.grid(row=row, column=1, sticky=tk.W, pady=2)
    projection_box.bind('<<ComboboxSelected>>', self.on_param_change)
    row += 1

    ttk.Separator(parent, orient='horizontal').grid(row=row, column=0, columnspan=2, sticky=(tk.W, tk.E), pady=10)
    row += 1

    button_frame = ttk.Frame(parent)
    button_frame.grid(row=row, column=0, columnspan=2, pady=10)
    ttk.Button(button_frame, text="Reset", command=self.reset_params).pack(side=tk.LEFT, padx=5)
    ttk.Button(button_frame, text="Save Image", command=self.save_image).pack(side=tk.LEFT, padx=5)
    row += 1

    ttk.Label(parent, text="Presets", font=('Arial', 10, 'bold')).grid(row=row, column=0, columnspan=2, sticky=tk.W, pady=(10, 5))
    row += 1

    preset_frame = ttk.Frame(parent)
    preset_frame.grid(row=row, column=0, columnspan=2, pady=5)
    ttk.Button(preset_frame, text="Wide", command=lambda: self.apply_preset('wide')).pack(side=tk.LEFT, padx=2)
    ttk.Button(preset_frame, text="Standard", command=lambda: self.apply_preset('standard')).pack(side=tk.LEFT, padx=2)
    ttk.Button(preset_frame, text="Narrow", command=lambda: self.apply_preset('narrow')).pack(side=tk.LEFT, padx=2)

  def setup_image_display(self, parent: ttk.Widget) -> None:
    display_frame = ttk.Frame(parent)
    display_frame.pack(fill=tk.BOTH, expand=True)

    display_frame.columnconfigure(0, weight=1)
    display_frame.columnconfigure(1, weight=1)
    display_frame.rowconfigure(1, weight=1)

    left_frame = ttk.Frame(display_frame)
    left_frame.grid(row=0, column=0, sticky=(tk.W, tk.E, tk.N, tk.S), padx=(0, 5))
    ttk.Label(left_frame, text="Original Fisheye Image", font=('Arial', 12, 'bold')).pack(pady=(0, 5))
    self.original_label = ttk.Label(left_frame)
    self.original_label.pack()

    right_frame = ttk.Frame(display_frame)
    right_frame.grid(row=0, column=1, sticky=(tk.W, tk.E, tk.N, tk.S), padx=(5, 0))
    ttk.Label(right_frame, text="Dewarped Result", font=('Arial', 12, 'bold')).pack(pady=(0, 5))
    self.dewarped_label = ttk.Label(right_frame)
    self.dewarped_label.pack()

    self.status_label = ttk.Label(display_frame, text="Ready", font=('Arial', 10))
    self.status_label.grid(row=1, column=0, columnspan=2, pady=(10, 0))

  def on_param_change(self, event: Optional[tk.Event] = None) -> None:
    # Debounce rapid changes
    if not self.update_pending:
      self.update_pending = True
      self.root.after(100, self.delayed_update)

  def delayed_update(self) -> None:
    self.update_pending = False
    self.update_images()

  def update_images(self) -> None:
    self.update_original_image()

    if self.processing_thread and self.processing_thread.is_alive():
      self.processing_queue.put_nowait('update')
    else:
      self.processing_thread = threading.Thread(target=self.process_dewarp, daemon=True)
      self.processing_thread.start()

  def update_original_image(self) -> None:
    img_tk = to_photo_image(self.fisheye_img)
    self.original_label.configure(image=img_tk)
    self.original_label.image = img_tk  # Keep a reference

  def current_params(self) -> DewarpParams:
    """Read the widgets into validated parameters."""
    params = DewarpParams(
      fov=self.params['fov'].get(),
      pfov=self.params['pfov'].get(),
      projection_type=self.params['projection_type'].get()
    )
    params.validate()
    return params

  def process_dewarp(self) -> None:
    while True:
      try:
        params = self.current_params()
        dewarper = FisheyeDewarp(params, cache_manager=self.cache_manager)
        result = (params, dewarper.dewarp(self.fisheye_img))
      except (tk.TclError, ValueError) as e:
        result = f"Error: {e}"

      # A newer request arrived while processing, so recompute
      try:
        self.processing_queue.get_nowait()
        continue
      except queue.Empty:
        pass

      self.result_queue.put(result)
      return

  def check_results(self) -> None:
    try:
      result = self.result_queue.get_nowait()
      if isinstance(result, str):
        self.status_label.configure(text=result)
      else:
        params, dewarped_img = result
        self.update_dewarped_image(params, dewarped_img)
        self.status_label.configure(text=f"Ready - {params}")
    except queue.Empty:
      pass

    self.root.after(100, self.check_results)

  def update_dewarped_image(self, params: DewarpParams, dewarped_img: np.ndarray) -> None:
    img_tk = to_photo_image(dewarped_img)
    self.dewarped_label.configure(image=img_tk)
    self.dewarped_label.image = img_tk  # Keep a reference

    self.last_dewarped_img = dewarped_img
    self.last_params = params

  def reset_params(self) -> None:
    self.params['projection_type'].set(ProjectionType.LINEAR.value)
    self.apply_preset('standard')

  def apply_preset(self, preset_type: str) -> None:
    fov, pfov = PRESETS[preset_type]
    self.params['fov'].set(fov)
    self.params['pfov'].set(pfov)
    self.update_images()

  def save_image(self) -> None:
    if self.last_dewarped_img is None:
      messagebox.showwarning("Warning", "No dewarped image to save")
      return

    filename = build_output_path(self.image_path, self.last_params.projection_type,
                                 self.last_params.fov, self.last_params.pfov)
    cv2.imwrite(filename, self.last_dewarped_img)
    messagebox.showinfo("Success", f"Image saved as {filename}")


def main() -> None:
  image_path = sys.argv[1] if len(sys.argv) > 1 else DEFAULT_IMAGE
  root = tk.Tk()
  app = DewarpUI(root, image_path)
  root.mainloop()


if __name__ == "__main__":
  main()
