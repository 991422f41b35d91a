from .binding_context import (
    BindingContext as BindingContext,
    BindingContextProvider as BindingContextProvider,
)
