import tkinter as tk
from tkinter import filedialog, messagebox
from PIL import Image, ImageTk
from pathlib import Path
from icodecoder import decode_ico_file
from icoerrors import ICODecodeError
from image_processing import flatten_on_checkerboard, alpha_histogram, palette_swatches
import viewer_style as style


# ==== ICO Viewer ====
class ICOViewer(tk.Frame):
    def __init__(self, master, file_path=None):
        super().__init__(master, bg=style.BG_MAIN)
        self.master = master
        self.pack(fill="both", expand=True)
        self.file_path = file_path

        # Toolbar
        toolbar = tk.Frame(self, bg=style.BG_TOOLBAR, padx=10, pady=8)
        toolbar.pack(side="top", fill="x")
        for text, command in (("Open ICO", self.open_ico),
                              ("< Prev", self.prev_frame),
                              ("Next >", self.next_frame),
                              ("Zoom In", self.zoom_in),
                              ("Zoom Out", self.zoom_out)):
            tk.Button(toolbar, text=text, command=command,
                      bg=style.BG_BUTTON, fg=style.FG_BUTTON,
                      font=("Segoe UI",10,"bold"), relief="flat", padx=10,pady=4).pack(side="left", padx=5)
        self.frame_label = tk.Label(toolbar, text="No file", bg=style.BG_TOOLBAR, fg=style.FG_BUTTON,
                                    font=style.FONT_TEXT)
        self.frame_label.pack(side="left", padx=15)

        # Main Frame
        main_frame = tk.Frame(self, bg=style.BG_MAIN)
        main_frame.pack(fill="both", expand=True, padx=10, pady=10)

        # Canvas frame
        canvas_frame = tk.Frame(main_frame, bg=style.BG_MAIN)
        canvas_frame.pack(side="left", fill="both", expand=True, padx=(0,10))
        self.canvas = tk.Canvas(canvas_frame, bg=style.BG_PANEL, cursor="cross")
        self.canvas.pack(side="left", fill="both", expand=True)
        self.scroll_y = tk.Scrollbar(canvas_frame, orient="vertical", command=self.canvas.yview)
        self.scroll_y.pack(side="right", fill="y")
        self.scroll_x = tk.Scrollbar(main_frame, orient="horizontal", command=self.canvas.xview)
        self.scroll_x.pack(side="bottom", fill="x")
        self.canvas.configure(yscrollcommand=self.scroll_y.set, xscrollcommand=self.scroll_x.set)

        self.canvas.bind("<Button-1>", self.get_pixel_info)
        self.canvas.bind("<ButtonPress-2>", self.start_pan)
        self.canvas.bind("<B2-Motion>", self.pan_image)
        self.canvas.bind("<MouseWheel>", self.on_mousewheel)
        self.canvas.bind("<Button-4>", self.on_mousewheel_linux)
        self.canvas.bind("<Button-5>", self.on_mousewheel_linux)

        # Info Panel
        info_frame = tk.Frame(main_frame, bg=style.BG_PANEL, bd=2, relief="groove", padx=15, pady=15)
        info_frame.pack(side="right", fill="y")
        tk.Label(info_frame, text="Pixel Info", font=style.FONT_HEADER,
                 bg=style.BG_PANEL, fg=style.FG_TEXT).pack(anchor="w", pady=(0,5))
        self.pixel_label = tk.Label(info_frame,
            text="Click on the image to view pixel RGBA values.",
            font=style.FONT_TEXT, justify="left", bg=style.BG_PANEL, fg=style.FG_SUBTEXT)
        self.pixel_label.pack(anchor="w", pady=(0,10))
        self.color_preview = tk.Canvas(info_frame, width=80, height=50, bg="#cccccc", bd=1, relief="solid")
        self.color_preview.pack(anchor="w", pady=(0,20))
        tk.Frame(info_frame, height=2, bg="#e0e0e0").pack(fill="x", pady=10)
        tk.Label(info_frame, text="Header Info", font=style.FONT_HEADER,
                 bg=style.BG_PANEL, fg=style.FG_TEXT).pack(anchor="w", pady=(0,5))
        self.header_text = tk.Text(info_frame, height=14, width=44,
                                   font=style.FONT_MONO, bg="#f9f9f9", fg="#222",
                                   relief="flat", wrap="none")
        self.header_text.pack(anchor="w", pady=(0,5))
        self.header_text.configure(state="disabled")
        tk.Label(info_frame, text="Transparency", font=style.FONT_HEADER,
                 bg=style.BG_PANEL, fg=style.FG_TEXT).pack(anchor="w", pady=(10,5))
        self.alpha_label = tk.Label(info_frame, text="", font=style.FONT_TEXT, justify="left",
                                    bg=style.BG_PANEL, fg=style.FG_SUBTEXT)
        self.alpha_label.pack(anchor="w")
        self.palette_section = tk.Frame(info_frame, bg=style.BG_PANEL)
        tk.Label(self.palette_section, text="Color Palette", font=style.FONT_HEADER,
                 bg=style.BG_PANEL, fg=style.FG_TEXT).pack(anchor="w", pady=(10,5))
        self.palette_canvas = tk.Canvas(self.palette_section, width=256, height=128, bg="#fff", bd=1, relief="solid")
        self.palette_canvas.pack(anchor="w")

        # Vars
        self.images = []
        self.index = 0
        self.tk_img = None
        self.zoom_factor = style.INITIAL_ZOOM
        self.header_info = None
        self.pan_start = None

        if file_path:
            self.load_ico(file_path)

    @property
    def image(self):
        return self.images[self.index] if self.images else None

    # ==== File Handling ====
    def open_ico(self):
        file_path = filedialog.askopenfilename(filetypes=[("Icon files","*.ico")])
        if file_path:
            self.load_ico(file_path)

    def load_ico(self, file_path):
        try:
            images, info = decode_ico_file(Path(file_path))
        except (ICODecodeError, OSError) as e:
            messagebox.showerror("Error", f"Failed to open ICO file:\n{e}")
            return
        self.file_path = file_path
        self.images = images
        self.header_info = info
        self.index = 0
        self.zoom_factor = style.INITIAL_ZOOM
        self.show_frame()
        self.show_header_info()

    # ==== Frames ====
    def show_frame(self):
        self.frame_label.config(text=f"Frame {self.index+1} / {len(self.images)}"
                                f"  ({self.image.width}×{self.image.height}, {self.image.source.upper()})")
        self.display_image()
        self.show_alpha_summary()
        self.draw_palette()

    def prev_frame(self):
        if self.images:
            self.index = (self.index - 1) % len(self.images)
            self.show_frame()

    def next_frame(self):
        if self.images:
            self.index = (self.index + 1) % len(self.images)
            self.show_frame()

    # ==== Display & Zoom ====
    def display_image(self):
        img = self.image
        if img:
            flat = flatten_on_checkerboard(img, style.CHECKER_CELL, style.CHECKER_LIGHT, style.CHECKER_DARK)
            w = max(1, int(img.width*self.zoom_factor))
            h = max(1, int(img.height*self.zoom_factor))
            img_resized = flat.resize((w,h), Image.NEAREST)
            self.tk_img = ImageTk.PhotoImage(img_resized)
            self.canvas.delete("all")
            self.canvas.create_image(0,0, anchor="nw", image=self.tk_img)
            self.canvas.config(scrollregion=self.canvas.bbox("all"))

    def zoom_in(self): self.zoom_factor*=style.ZOOM_STEP; self.display_image()
    def zoom_out(self): self.zoom_factor/=style.ZOOM_STEP; self.display_image()
    def on_mousewheel(self,event): self.zoom_in() if event.delta>0 else self.zoom_out()
    def on_mousewheel_linux(self,event):
        if event.num==4: self.zoom_in()
        elif event.num==5: self.zoom_out()
    def start_pan(self,event): self.pan_start=(event.x,event.y)
    def pan_image(self,event):
        if self.pan_start:
            dx=self.pan_start[0]-event.x
            dy=self.pan_start[1]-event.y
            self.canvas.xview_scroll(int(dx/2),"units")
            self.canvas.yview_scroll(int(dy/2),"units")
            self.pan_start=(event.x,event.y)

    # ==== Pixel info ====
    def get_pixel_info(self,event):
        img = self.image
        if img:
            x=int(self.canvas.canvasx(event.x)/self.zoom_factor)
            y=int(self.canvas.canvasy(event.y)/self.zoom_factor)
            if 0<=x<img.width and 0<=y<img.height:
                r,g,b,a=img.getpixel((x,y))
                self.pixel_label.config(text=f"X:{x}\nY:{y}\nR:{r}\nG:{g}\nB:{b}\nA:{a}")
                self.color_preview.config(bg=f"#{r:02x}{g:02x}{b:02x}")

    # ==== Header info ====
    def show_header_info(self):
        if not self.header_info: return
        text="\n".join(f"{k}: {v}" for k,v in self.header_info.items())
        self.header_text.configure(state="normal")
        self.header_text.delete("1.0","end")
        self.header_text.insert("1.0",text)
        self.header_text.configure(state="disabled")

    def show_alpha_summary(self):
        hist = alpha_histogram(self.image)
        partial = sum(hist[1:255])
        self.alpha_label.config(text=f"Opaque: {hist[255]}\nTransparent: {hist[0]}\nPartial: {partial}")

    # ==== Palette ====
    def show_palette_section(self):
        self.palette_section.pack(anchor="w", fill="x")

    def hide_palette_section(self):
        self.palette_section.pack_forget()

    def draw_palette(self):
        """Swatches for 1/4/8-bit frames; hidden for direct color and PNG frames."""
        self.palette_canvas.delete("all")
        width, height, swatches = palette_swatches(self.image.palette)
        if not swatches:
            self.hide_palette_section()
            return
        self.palette_canvas.config(width=width, height=height)
        for x0, y0, x1, y1, color in swatches:
            self.palette_canvas.create_rectangle(x0, y0, x1, y1, fill=color, outline="")
        self.show_palette_section()


def main():
    import sys
    root=tk.Tk()
    root.title("ICO Viewer")
    root.geometry("1100x750")
    app=ICOViewer(root, sys.argv[1] if len(sys.argv) > 1 else None)
    app.pack(fill="both", expand=True)
    root.mainloop()


# ==== Main ====
if __name__=="__main__":
    main()
