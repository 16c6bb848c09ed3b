#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>


# -- CLEANUP FUNCTIONS:
def cleanup_compiler_context(context):
    print("CALLED: cleanup_compiler_context")
    for attribute in ("project", "graph", "error"):
        if hasattr(context, attribute):
            delattr(context, attribute)


# -- HOOKS:
def before_scenario(context, scenario):
    print("CALLED-HOOK: before_scenario:%s" % scenario.name)


def after_scenario(context, scenario):
    print("CALLED-HOOK: after_scenario:%s" % scenario.name)
    cleanup_compiler_context(context)
