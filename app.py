import gradio as gr
from functools import partial

from json_report_rows.expansion import CARTESIAN, EXPANSION_MODES
from json_report_rows.schema_utils import build_tree_from_keys
from json_report_rows.handlers import (
    export_report_handler,
    fields_for_root,
    handle_root_change,
    load_and_parse_json_with_preview,
    preview_report_handler,
    update_mapping_and_group_key,
)

# --- UI Definition ---
with gr.Blocks(title="JSON Report Rows") as demo:
    gr.Markdown("# JSON Report Rows")
    gr.Markdown(
        "Upload nested JSON records, pick the fields to report, and export one spreadsheet row "
        "per combination of nested array items, with repeated parent values blanked."
    )

    # State
    json_data_state = gr.State()
    selected_fields_state = gr.State(value=[])

    with gr.Row():
        # Left Panel: Input & Fields
        with gr.Column(scale=1):
            gr.Markdown("### 1. Import")
            file_input = gr.File(label="Upload JSON File", file_types=[".json"])
            status_msg = gr.Textbox(label="Status", interactive=False)
            root_path_selector = gr.Dropdown(
                label="Record List Path",
                choices=["(root)"],
                value="(root)",
                allow_custom_value=True,
                interactive=True,
            )
            record_count = gr.Textbox(label="Record Count", interactive=False)

            gr.Markdown("### 2. Select Fields")
            gr.Markdown("Columns appear in the order fields are ticked.")

            @gr.render(inputs=[json_data_state, root_path_selector], triggers=[json_data_state.change, root_path_selector.change])
            def render_fields(data, root_path):
                fields = fields_for_root(data, root_path)
                if not fields:
                    gr.Markdown("No data loaded.")
                    return

                tree = build_tree_from_keys(fields)

                def on_change(path, is_selected, current_selected):
                    current_selected = list(current_selected or [])
                    if is_selected and path not in current_selected:
                        current_selected.append(path)
                    elif not is_selected and path in current_selected:
                        current_selected.remove(path)
                    return current_selected

                def add_checkbox(path, label):
                    cb = gr.Checkbox(label=label, value=False)
                    cb.change(fn=partial(on_change, path), inputs=[cb, selected_fields_state], outputs=[selected_fields_state])

                def recursive_ui(node, label):
                    if not isinstance(node, dict):
                        add_checkbox(node, label)
                        return
                    if "__self__" in node:
                        add_checkbox(node["__self__"], f"{label} (value)")
                    with gr.Accordion(label, open=False):
                        for k, v in node.items():
                            if k != "__self__":
                                recursive_ui(v, k)

                for k, v in tree.items():
                    recursive_ui(v, k)

        # Right Panel: Report Builder
        with gr.Column(scale=1):
            gr.Markdown("### 3. Report Options")
            group_key_selector = gr.Dropdown(
                label="Group Key (one group per record)",
                choices=[],
                value=None,
                interactive=True,
            )
            mode_selector = gr.Radio(
                choices=list(EXPANSION_MODES),
                value=CARTESIAN,
                label="Sibling Arrays",
                info="cartesian: every combination; zip: pair items by position",
            )

            gr.Markdown("### 4. Column Names")
            mapping_table = gr.Dataframe(
                headers=["Input Path", "Output Name"],
                datatype=["str", "str"],
                col_count=(2, "fixed"),
                interactive=True,
                label="Field Mapping",
            )

            gr.Markdown("### 5. Export")
            output_format = gr.Radio(choices=["XLSX", "CSV", "JSON"], value="XLSX", label="Output Format")
            output_filename = gr.Textbox(label="Output Filename (optional)", placeholder="report")
            load_preview_btn = gr.Button("Load Preview")
            export_btn = gr.Button("Export Report", variant="primary")
            download_output = gr.File(label="Download Result")
            report_preview = gr.JSON(label="Preview (first 3 rows)")

    file_input.upload(
        fn=load_and_parse_json_with_preview,
        inputs=[file_input],
        outputs=[
            json_data_state,
            selected_fields_state,
            root_path_selector,
            status_msg,
            mapping_table,
            report_preview,
            record_count,
            group_key_selector,
        ],
    )

    root_path_selector.change(
        fn=handle_root_change,
        inputs=[json_data_state, root_path_selector],
        outputs=[record_count, selected_fields_state, report_preview],
    )

    selected_fields_state.change(
        fn=update_mapping_and_group_key,
        inputs=[selected_fields_state, group_key_selector],
        outputs=[mapping_table, group_key_selector, report_preview],
    )

    load_preview_btn.click(
        fn=preview_report_handler,
        inputs=[json_data_state, mapping_table, group_key_selector, mode_selector, root_path_selector],
        outputs=[report_preview],
    )

    export_btn.click(
        fn=export_report_handler,
        inputs=[
            json_data_state,
            mapping_table,
            group_key_selector,
            mode_selector,
            output_format,
            output_filename,
            root_path_selector,
        ],
        outputs=[download_output, status_msg],
    )

if __name__ == "__main__":
    demo.launch()
